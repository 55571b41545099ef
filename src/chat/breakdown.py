"""
Task Breakdown

Turns an overwhelming task into a short plan of main steps, each with
concrete sub-steps, using Groq JSON output through the request queue.
"""

from typing import Dict, List, Optional
import json
import logging

from pydantic import BaseModel, Field

from ..ai.queue import AIRequestQueue, Provider
from ..llm.groq_client import GROQ_MODELS, GroqClient
from ..personas.detector import strip_code_fence
from ..personas.prompts import BREAKDOWN_TOOL_PROMPT, COMPLEXITY_PROMPT

logger = logging.getLogger(__name__)

# Phrases that ask for a plan outright, as opposed to "how do I ..." questions
EXPLICIT_PLAN_KEYWORDS = [
    'create a plan', 'make a plan', 'build a plan', 'give me a plan',
    'give me plan', 'i need a plan', 'i need plan', 'show me a plan',
    'show me plan', 'provide a plan', 'provide plan',
    'step by step', 'step-by-step', 'steps to', 'steps for',
    'break down', 'break it down', 'breakdown',
    'walk me through', 'guide me through',
]

LOW_ENERGY_THRESHOLD = 3
LOW_ENERGY_NOTE = "Your energy is low - it's okay to do just the first 1-2 main steps today. Progress > perfection."


def explicitly_requests_breakdown(query: str) -> bool:
    query = (query or "").lower()
    return any(keyword in query for keyword in EXPLICIT_PLAN_KEYWORDS)


class BreakdownStep(BaseModel):
    title: str
    time_estimate: Optional[str] = None
    sub_steps: List[str] = Field(default_factory=list)
    is_optional: bool = False
    is_hard: bool = False


class ComplexityAnalysis(BaseModel):
    complexity: int
    needs_breakdown: bool
    reasoning: str


class TaskBreakdown(BaseModel):
    task: str
    steps: List[BreakdownStep]
    complexity: int = 5
    estimated_time: Optional[str] = None
    tips: List[str] = Field(default_factory=list)
    energy_note: Optional[str] = None
    source: str = "llm"  # "llm" or "fallback"


FALLBACK_STEPS = [
    BreakdownStep(
        title="Get ready",
        time_estimate="5 min",
        sub_steps=["Gather any materials or information you need", "Clear a small space to work"],
    ),
    BreakdownStep(
        title="Do the main task in small chunks",
        time_estimate="Varies",
        sub_steps=["Pick the smallest piece to start with", "Work on it for 10 minutes", "Take a short break"],
    ),
    BreakdownStep(
        title="Wrap up",
        time_estimate="5 min",
        sub_steps=["Review what you've done", "Celebrate finishing"],
    ),
]

FALLBACK_TIPS = ["Take breaks between steps", "You don't have to do it all at once"]


class BreakdownGenerator:
    """
    Generates micro-step plans for tasks.

    Usage:
        generator = BreakdownGenerator(groq, get_ai_queue())
        plan = await generator.generate("clean my apartment", ef_challenges=["task initiation"])
    """

    def __init__(self, groq: GroqClient, queue: AIRequestQueue):
        self.groq = groq
        self.queue = queue

    async def analyze_complexity(self, task: str, context: Optional[str] = None) -> ComplexityAnalysis:
        """
        Score a task 0-10 and decide whether it needs a breakdown.

        Explicit plan requests skip the LLM. Errors default to suggesting a breakdown.
        """
        if explicitly_requests_breakdown(task):
            return ComplexityAnalysis(
                complexity=7,
                needs_breakdown=True,
                reasoning="User explicitly requested a plan/breakdown",
            )

        default = ComplexityAnalysis(
            complexity=5,
            needs_breakdown=True,
            reasoning="Unable to analyze, defaulting to breakdown support",
        )
        if not self.groq.configured:
            return default

        prompt = f'Task: "{task}"\n'
        if context:
            prompt += f"Context: {context}\n"
        messages = [
            {"role": "system", "content": BREAKDOWN_TOOL_PROMPT},
            {"role": "user", "content": f"{prompt}\n{COMPLEXITY_PROMPT}"},
        ]

        try:
            raw = await self.queue.add_request(
                lambda: self.groq.structured_output(messages, model=GROQ_MODELS["LLAMA_8B"]),
                Provider.GROQ,
            )
            data = json.loads(strip_code_fence(raw))
            complexity = int(data.get("complexity") or 5)
            return ComplexityAnalysis(
                complexity=min(max(complexity, 0), 10),
                needs_breakdown=bool(data.get("needsBreakdown")) or complexity >= 5,
                reasoning=str(data.get("reasoning") or "Task requires multiple steps"),
            )
        except Exception as e:
            logger.warning(f"Complexity analysis failed: {e}")
            return default

    async def generate(
        self,
        task: str,
        context: Optional[str] = None,
        ef_challenges: Optional[List[str]] = None,
        support_level: int = 3,
        energy_level: Optional[int] = None,
    ) -> TaskBreakdown:
        """
        Break a task into main steps with sub-steps.

        Args:
            task: What the user wants to get done
            context: Extra detail from the user
            ef_challenges: Active executive-function challenges from the profile
            support_level: 1 (independent) to 5 (maximum support)
            energy_level: Self-reported energy 1-10

        Returns:
            TaskBreakdown; a generic three-step plan if generation fails
        """
        if not self.groq.configured:
            logger.warning("Groq not configured, using fallback breakdown")
            return self.fallback(task, energy_level)

        messages = self.build_messages(task, context, ef_challenges, support_level, energy_level)

        try:
            raw = await self.queue.add_request(
                lambda: self.groq.structured_output(messages, temperature=0.7),
                Provider.GROQ,
            )
            breakdown = self.parse_breakdown(task, raw)
        except Exception as e:
            logger.error(f"Error generating breakdown: {e}")
            return self.fallback(task, energy_level)

        if energy_level is not None and energy_level <= LOW_ENERGY_THRESHOLD:
            breakdown.energy_note = breakdown.energy_note or LOW_ENERGY_NOTE
        return breakdown

    def build_messages(
        self,
        task: str,
        context: Optional[str],
        ef_challenges: Optional[List[str]],
        support_level: int,
        energy_level: Optional[int],
    ) -> List[Dict[str, str]]:
        system_prompt = BREAKDOWN_TOOL_PROMPT + f"\n\nUSER'S SUPPORT LEVEL: {support_level}/5"
        if support_level >= 4:
            system_prompt += "\nThis user needs MAXIMUM support - provide detailed sub-steps for every main step."
        elif support_level <= 2:
            system_prompt += "\nThis user wants independence - keep sub-steps to truly complex actions."

        if energy_level is not None and energy_level <= LOW_ENERGY_THRESHOLD:
            system_prompt += (
                f"\n\nUSER'S ENERGY IS LOW ({energy_level}/10). Keep main steps simple and achievable "
                "and give detailed sub-steps to reduce cognitive load."
            )

        prompt = f'Please break down this task into manageable micro-steps:\n\nTask: "{task}"'
        if context:
            prompt += f"\nContext: {context}"
        if ef_challenges:
            prompt += (
                f"\n\nUser's EF Profile: {', '.join(ef_challenges)}"
                "\n(Adjust breakdown to accommodate these challenges)"
            )

        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]

    @staticmethod
    def parse_breakdown(task: str, raw: str) -> TaskBreakdown:
        """Parse the breakdown JSON. Raises ValueError on malformed output."""
        data = json.loads(strip_code_fence(raw))
        if not isinstance(data, dict) or not isinstance(data.get("breakdown"), list):
            raise ValueError("Invalid breakdown format")

        steps = []
        for item in data["breakdown"]:
            # Older prompt versions return plain strings
            if isinstance(item, str):
                steps.append(BreakdownStep(title=item))
                continue
            if not isinstance(item, dict) or not item.get("title"):
                raise ValueError(f"Invalid breakdown step: {item!r}")
            steps.append(BreakdownStep(
                title=str(item["title"]),
                time_estimate=item.get("timeEstimate"),
                sub_steps=[str(s) for s in item.get("subSteps") or []],
                is_optional=bool(item.get("isOptional", False)),
                is_hard=bool(item.get("isHard", False)),
            ))

        if not steps:
            raise ValueError("Breakdown has no steps")

        return TaskBreakdown(
            task=task,
            steps=steps,
            complexity=int(data.get("complexity") or 5),
            estimated_time=data.get("estimatedTime"),
            tips=[str(t) for t in data.get("tips") or []],
        )

    @staticmethod
    def fallback(task: str, energy_level: Optional[int] = None) -> TaskBreakdown:
        low_energy = energy_level is not None and energy_level <= LOW_ENERGY_THRESHOLD
        return TaskBreakdown(
            task=task,
            steps=[step.model_copy(deep=True) for step in FALLBACK_STEPS],
            complexity=5,
            estimated_time="Varies based on task",
            tips=list(FALLBACK_TIPS),
            energy_note=LOW_ENERGY_NOTE if low_energy else None,
            source="fallback",
        )
