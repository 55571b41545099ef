"""
Storage module - Supabase rows for profiles, chat messages and sessions
"""

from .supabase_store import (
    SupabaseStore,
    UserProfile,
    ChatRecord,
    ChatSession,
    FeedbackResult,
    MessageNotFoundError,
)

__all__ = [
    "SupabaseStore",
    "UserProfile",
    "ChatRecord",
    "ChatSession",
    "FeedbackResult",
    "MessageNotFoundError",
]
