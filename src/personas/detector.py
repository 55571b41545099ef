"""
Persona Detector

Decides which coaching persona answers a chat turn:
1. Keyword scoring (offline, always available)
2. LLM classification using the persona detector prompt
3. Breakdown detection (user sounds stuck or overwhelmed)
"""

import json
import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel

from .prompts import PERSONA_DETECTOR_PROMPT, PersonaType

logger = logging.getLogger(__name__)


def strip_code_fence(raw: str) -> str:
    """JSON body of an LLM reply, with any markdown code fence removed"""
    text = (raw or "").strip()
    match = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    if match:
        return match.group(1).strip()
    return text


class PersonaDetection(BaseModel):
    """Detected persona for a message"""
    persona: PersonaType
    confidence: float
    reasoning: str = ""
    needs_breakdown: bool = False
    source: str = "keywords"  # "keywords" or "llm"

    @property
    def category(self) -> str:
        return self.persona.category


class PersonaDetector:
    """
    Detects the coaching persona for a user message.

    Usage:
        detector = PersonaDetector()
        detection = detector.detect("How do I update my resume?")
        # PersonaDetection(persona=PersonaType.CAREER, confidence=0.8, ...)
    """

    CAREER_KEYWORDS = [
        'job', 'career', 'resume', 'cv', 'cover letter', 'interview',
        'application', 'apply', 'hiring', 'linkedin', 'boss', 'manager',
        'coworker', 'workplace', 'promotion', 'internship', 'salary'
    ]

    FINANCE_KEYWORDS = [
        'money', 'budget', 'bill', 'rent', 'debt', 'loan', 'credit',
        'bank', 'savings', 'save', 'spend', 'paycheck', 'tax', 'taxes',
        'finance', 'financial', 'insurance', 'subscription', 'afford'
    ]

    DAILY_TASK_KEYWORDS = [
        'task', 'routine', 'schedule', 'laundry', 'clean', 'dishes',
        'focus', 'procrastinat', 'organize', 'time management', 'morning',
        'remember', 'forget', 'chore', 'errand', 'todo', 'to-do'
    ]

    BREAKDOWN_KEYWORDS = [
        'break down', 'break it down', 'breakdown', 'step by step',
        'step-by-step', 'where do i start', 'where to start',
        'how do i begin', 'how to begin', 'overwhelmed', 'too much',
        'stuck', "can't start", 'cannot start', 'help me plan', 'make a plan'
    ]

    MULTI_DOMAIN_PATTERNS = [
        r'work.*life.*balance',
        r'job.*money',
        r'career.*finances',
        r'manage.*everything',
        r'organize.*life',
    ]

    def __init__(self, confidence_threshold: float = 0.6):
        self.confidence_threshold = confidence_threshold

    def detect(self, message: str) -> PersonaDetection:
        """
        Detect the persona from keywords alone.

        Args:
            message: User's chat message

        Returns:
            PersonaDetection (daily_tasks when nothing matches)
        """
        message_lower = message.lower().strip()
        scores = self._score(message_lower)

        persona = PersonaType.DAILY_TASKS
        best = 0
        # Career and finance win ties over the catch-all persona
        for candidate in (PersonaType.CAREER, PersonaType.FINANCE, PersonaType.DAILY_TASKS):
            if scores[candidate] > best:
                persona = candidate
                best = scores[candidate]

        return PersonaDetection(
            persona=persona,
            confidence=self._calculate_confidence(best),
            reasoning=f"Matched {best} {persona.value} keyword(s)" if best else "No domain keywords matched",
            needs_breakdown=self.needs_breakdown(message_lower),
            source="keywords",
        )

    async def detect_with_llm(
        self,
        message: str,
        complete: Callable[[List[Dict[str, str]]], Awaitable[str]],
    ) -> PersonaDetection:
        """
        Detect the persona by asking an LLM.

        Args:
            message: User's chat message
            complete: Coroutine taking chat messages and returning the raw JSON text

        Returns:
            PersonaDetection; daily_tasks if the LLM is unsure
        """
        messages = [
            {"role": "system", "content": PERSONA_DETECTOR_PROMPT},
            {"role": "user", "content": f'Analyze this user message:\n\n"{message}"'},
        ]

        raw = await complete(messages)
        try:
            return self.parse_llm_response(raw, message)
        except (ValueError, TypeError) as e:
            logger.warning(f"Could not parse persona detection, using keywords: {e}")
            return self.detect(message)

    def parse_llm_response(self, raw: str, message: str) -> PersonaDetection:
        """Parse the detector JSON. Raises ValueError on malformed output."""
        data = json.loads(strip_code_fence(raw))
        if not isinstance(data, dict):
            raise ValueError("Persona detection is not a JSON object")

        confidence = float(data.get("confidence", 0.0))
        reasoning = str(data.get("reasoning", ""))
        needs_breakdown = self.needs_breakdown(message.lower())

        try:
            persona = PersonaType(str(data.get("detected_persona", "")).lower())
        except ValueError:
            logger.info(f"Unknown persona {data.get('detected_persona')!r}, defaulting to daily_tasks")
            persona = PersonaType.DAILY_TASKS

        if confidence < self.confidence_threshold:
            persona = PersonaType.DAILY_TASKS

        return PersonaDetection(
            persona=persona,
            confidence=min(max(confidence, 0.0), 1.0),
            reasoning=reasoning,
            needs_breakdown=needs_breakdown,
            source="llm",
        )

    def needs_breakdown(self, message: str) -> bool:
        message = message.lower()
        return any(kw in message for kw in self.BREAKDOWN_KEYWORDS)

    def is_multi_domain_query(self, message: str) -> bool:
        """Check if a message spans more than one coaching domain"""
        return any(re.search(p, message, re.IGNORECASE) for p in self.MULTI_DOMAIN_PATTERNS)

    def _score(self, message: str) -> Dict[PersonaType, int]:
        keyword_map = {
            PersonaType.CAREER: self.CAREER_KEYWORDS,
            PersonaType.FINANCE: self.FINANCE_KEYWORDS,
            PersonaType.DAILY_TASKS: self.DAILY_TASK_KEYWORDS,
        }
        scores = {}
        for persona, keywords in keyword_map.items():
            scores[persona] = sum(
                1 for kw in keywords if re.search(r'\b' + re.escape(kw), message)
            )
        return scores

    def _calculate_confidence(self, matches: int) -> float:
        """Calculate confidence score from the number of keyword hits"""
        confidence = 0.5  # Base confidence

        if matches > 0:
            confidence += 0.2
            confidence += 0.1 * min(matches - 1, 3)

        return min(confidence, 1.0)
