"""
Tests for task breakdown generation
"""

import asyncio
import json

import pytest

from src.ai.queue import AIRequestQueue
from src.chat.breakdown import (
    LOW_ENERGY_NOTE,
    BreakdownGenerator,
    explicitly_requests_breakdown,
)

from fakes import FakeGroq


BREAKDOWN_JSON = json.dumps({
    "breakdown": [
        {
            "title": "Prep: Review the job posting",
            "timeEstimate": "5-10 min",
            "subSteps": ["Open the posting", "Highlight the required skills"],
            "isOptional": False,
            "isHard": False,
        },
        {
            "title": "Ask a friend to read your resume",
            "timeEstimate": "10 min",
            "subSteps": ["Pick one friend", "Send them the file"],
            "isOptional": True,
            "isHard": True,
        },
    ],
    "complexity": 6,
    "estimatedTime": "1 hour",
    "tips": ["Take a break after step 1"],
})


async def no_sleep(seconds):
    return None


def make_generator(detection):
    groq = FakeGroq(detection=detection)
    return BreakdownGenerator(groq, AIRequestQueue(sleep=no_sleep)), groq


class TestExplicitRequests:
    """Tests for explicitly_requests_breakdown"""

    def test_plan_phrases(self):
        for query in ["Can you give me a plan for moving?", "Walk me through filing taxes", "steps to apply"]:
            assert explicitly_requests_breakdown(query), f"Failed for: {query}"

    def test_plain_questions(self):
        for query in ["How do I apply for jobs?", "", None]:
            assert not explicitly_requests_breakdown(query), f"Failed for: {query!r}"


class TestBreakdownGenerator:
    """Tests for BreakdownGenerator.generate"""

    def test_parses_steps(self):
        generator, groq = make_generator(BREAKDOWN_JSON)

        plan = asyncio.run(generator.generate("apply for a job", ef_challenges=["task initiation"]))

        assert plan.source == "llm"
        assert plan.task == "apply for a job"
        assert [s.title for s in plan.steps] == ["Prep: Review the job posting", "Ask a friend to read your resume"]
        assert plan.steps[0].time_estimate == "5-10 min"
        assert plan.steps[1].sub_steps == ["Pick one friend", "Send them the file"]
        assert plan.steps[1].is_hard and plan.steps[1].is_optional
        assert plan.complexity == 6
        assert plan.estimated_time == "1 hour"
        assert plan.energy_note is None

        messages, _ = groq.structured_calls[0]
        assert "Breakdown Tool" in messages[0]["content"]
        assert "User's EF Profile: task initiation" in messages[1]["content"]

    def test_support_and_energy_prompt(self):
        generator, groq = make_generator(BREAKDOWN_JSON)

        plan = asyncio.run(generator.generate("do laundry", support_level=5, energy_level=2))

        system_prompt = groq.structured_calls[0][0][0]["content"]
        assert "USER'S SUPPORT LEVEL: 5/5" in system_prompt
        assert "MAXIMUM support" in system_prompt
        assert "ENERGY IS LOW (2/10)" in system_prompt
        assert plan.energy_note == LOW_ENERGY_NOTE

    def test_string_steps(self):
        plan = BreakdownGenerator.parse_breakdown("x", '```json\n{"breakdown": ["Stand up", "Walk"]}\n```')
        assert [s.title for s in plan.steps] == ["Stand up", "Walk"]
        assert plan.complexity == 5

    def test_invalid_format_rejected(self):
        for raw in ['{"steps": []}', '{"breakdown": []}', '{"breakdown": [{"subSteps": []}]}', "nope"]:
            with pytest.raises(ValueError):
                BreakdownGenerator.parse_breakdown("x", raw)

    def test_malformed_output_uses_fallback(self):
        generator, _ = make_generator("not json")

        plan = asyncio.run(generator.generate("clean my room", energy_level=3))

        assert plan.source == "fallback"
        assert len(plan.steps) == 3
        assert all(step.sub_steps for step in plan.steps)
        assert plan.energy_note == LOW_ENERGY_NOTE

    def test_unconfigured_groq_uses_fallback(self):
        generator, groq = make_generator(BREAKDOWN_JSON)
        groq.configured = False

        plan = asyncio.run(generator.generate("clean my room"))

        assert plan.source == "fallback"
        assert groq.structured_calls == []


class TestComplexityAnalysis:
    """Tests for BreakdownGenerator.analyze_complexity"""

    def test_explicit_request_skips_llm(self):
        generator, groq = make_generator("{}")

        analysis = asyncio.run(generator.analyze_complexity("break down my taxes"))

        assert analysis.complexity == 7
        assert analysis.needs_breakdown
        assert groq.structured_calls == []

    def test_simple_task(self):
        generator, groq = make_generator('{"complexity": 2, "needsBreakdown": false, "reasoning": "one action"}')

        analysis = asyncio.run(generator.analyze_complexity("email my professor"))

        assert analysis.complexity == 2
        assert not analysis.needs_breakdown
        assert analysis.reasoning == "one action"
        assert groq.structured_calls[0][1]["model"] == "llama-3.1-8b-instant"

    def test_high_score_needs_breakdown(self):
        generator, _ = make_generator('{"complexity": 8, "needsBreakdown": false}')
        assert asyncio.run(generator.analyze_complexity("plan a move")).needs_breakdown

    def test_error_defaults_to_breakdown(self):
        generator, _ = make_generator("garbage")

        analysis = asyncio.run(generator.analyze_complexity("plan a move"))

        assert analysis.complexity == 5
        assert analysis.needs_breakdown
