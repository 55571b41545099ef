"""
Context Assembler

Builds the personalization block injected into the system prompt.
Combines the user's profile row, their most recent chat turns and
semantically related past conversations.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from config.settings import get_settings
from ..storage.supabase_store import SupabaseStore
from ..vector.pinecone_store import ChatVectorStore, StoredChat

logger = logging.getLogger(__name__)

PROFILE_UNAVAILABLE = "User profile unavailable."
NO_PROFILE = "No user profile available."

AUDIENCE_LINES = [
    "User is a neurodivergent young adult navigating post-college life transitions.",
    "They benefit from structured guidance, breakdown of complex tasks, and supportive, non-judgmental communication.",
]


@dataclass
class ProfileSnapshot:
    """Profile fields the coach personas care about"""
    name: Optional[str] = None
    neurotypes: Optional[Dict[str, bool]] = None
    ef_challenges: Optional[Dict[str, bool]] = None
    current_goal: Optional[str] = None
    job_field: Optional[str] = None
    graduation_timeline: Optional[str] = None

    @classmethod
    def from_row(cls, row: Optional[Dict[str, Any]]) -> "ProfileSnapshot":
        if not row:
            return cls()
        return cls(
            name=row.get("name"),
            neurotypes=row.get("neurotypes"),
            ef_challenges=row.get("ef_challenges"),
            current_goal=row.get("current_goal"),
            job_field=row.get("job_field"),
            graduation_timeline=row.get("graduation_timeline"),
        )


@dataclass
class AIContext:
    """Everything known about the user for one chat turn"""
    user_profile: ProfileSnapshot
    recent_messages: List[Dict[str, str]]
    relevant_past_conversations: List[StoredChat]
    profile_summary: str
    degraded: bool = False

    def to_prompt(self) -> str:
        return format_context_for_prompt(self)


def build_profile_summary(profile: Optional[Dict[str, Any]]) -> str:
    """Human-readable profile summary for the system prompt"""
    if not profile:
        return NO_PROFILE

    parts = []

    if profile.get("name"):
        parts.append(f"User: {profile['name']}")

    neurotypes = active_flags(profile.get("neurotypes"))
    if neurotypes:
        parts.append(f"Neurotypes: {', '.join(neurotypes)}")

    challenges = active_flags(profile.get("ef_challenges"))
    if challenges:
        parts.append(f"Executive Function Challenges: {', '.join(challenges)}")
        parts.append(
            "These challenges may affect task initiation, time management, organization, and daily planning."
        )

    if profile.get("current_goal"):
        parts.append(f"Current Focus: {profile['current_goal'].replace('_', ' ')}")
        if profile.get("job_field"):
            parts.append(f"Job Field Interest: {profile['job_field']}")

    if profile.get("graduation_timeline"):
        parts.append(f"Graduation Timeline: {profile['graduation_timeline']}")

    parts.extend(AUDIENCE_LINES)
    return "\n".join(parts)


def active_flags(flags: Optional[Dict[str, Any]]) -> List[str]:
    if not flags:
        return []
    return [name.replace("_", " ") for name, active in flags.items() if active]


def format_context_for_prompt(context: AIContext) -> str:
    """Render an AIContext as the text block appended to the system prompt"""
    sections = ["=== USER PROFILE ===", context.profile_summary]

    if context.recent_messages:
        sections.append("\n=== RECENT CONVERSATION ===")
        for msg in context.recent_messages:
            speaker = "User" if msg.get("role") == "user" else "Assistant"
            sections.append(f"{speaker}: {msg.get('content', '')}")

    if context.relevant_past_conversations:
        sections.append("\n=== RELEVANT PAST DISCUSSIONS ===")
        for idx, conv in enumerate(context.relevant_past_conversations, start=1):
            sections.append(f"\nPast Discussion {idx} ({conv.category}):")
            sections.append(f"User: {conv.message}")
            sections.append(f"Assistant: {conv.response}")

    return "\n".join(sections)


class ContextAssembler:
    """
    Assembles the AI context for a user query.

    Usage:
        assembler = ContextAssembler(profile_store, vector_store)
        context = assembler.build_ai_context("user_123", "I can't start my laundry", "daily_task")
        system_prompt += "\\n\\n" + context.to_prompt()
    """

    def __init__(
        self,
        store: SupabaseStore,
        vector_store: Optional[ChatVectorStore] = None,
        recent_limit: int = None,
        relevant_limit: int = None,
    ):
        settings = get_settings()
        self.store = store
        self.vector_store = vector_store
        self.recent_limit = settings.recent_message_limit if recent_limit is None else recent_limit
        self.relevant_limit = settings.relevant_context_limit if relevant_limit is None else relevant_limit

    def build_ai_context(
        self,
        user_id: str,
        current_query: str,
        category: Optional[str] = None,
        recent_limit: Optional[int] = None,
    ) -> AIContext:
        """
        Assemble profile, recent chat and related past conversations.

        Args:
            user_id: User the context is for
            current_query: Message being answered (drives semantic search)
            category: Restrict semantic search to one chat category
            recent_limit: Override the number of recent turns

        Returns:
            AIContext; a degraded, empty one if any lookup fails
        """
        try:
            profile = self.store.get_user_profile(user_id)

            if recent_limit is None:
                recent_limit = self.recent_limit
            recent_messages = []
            if recent_limit > 0:
                recent_messages = self.store.get_recent_chat_context(user_id, recent_limit)

            relevant = []
            if self.vector_store is not None and self.relevant_limit > 0:
                relevant = self.vector_store.retrieve_relevant_context(
                    user_id, current_query, category, self.relevant_limit
                )

            return AIContext(
                user_profile=ProfileSnapshot.from_row(profile),
                recent_messages=recent_messages,
                relevant_past_conversations=relevant,
                profile_summary=build_profile_summary(profile),
            )
        except Exception as e:
            logger.error(f"Error building AI context for {user_id}: {e}")
            return self.empty_context()

    @staticmethod
    def empty_context() -> AIContext:
        return AIContext(
            user_profile=ProfileSnapshot(),
            recent_messages=[],
            relevant_past_conversations=[],
            profile_summary=PROFILE_UNAVAILABLE,
            degraded=True,
        )

    def get_minimal_context(self, user_id: str) -> str:
        """Profile summary only, for quick responses"""
        try:
            return build_profile_summary(self.store.get_user_profile(user_id))
        except Exception as e:
            logger.error(f"Error getting minimal context for {user_id}: {e}")
            return PROFILE_UNAVAILABLE

    def has_user_context(self, user_id: str) -> bool:
        """Whether the user finished onboarding, so answers can be personalized"""
        try:
            return self.store.is_user_onboarded(user_id)
        except Exception as e:
            logger.warning(f"Could not check onboarding for {user_id}: {e}")
            return False
