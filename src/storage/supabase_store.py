"""
Supabase Store

User profile and chat message rows in Supabase (Postgres).
"""

from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
import logging

from pydantic import BaseModel, Field
from supabase import Client, create_client

from config.settings import get_settings

logger = logging.getLogger(__name__)

PROFILES_TABLE = "user_profiles"
MESSAGES_TABLE = "chat_messages"

# Feedback locks after the first selection plus one change
FEEDBACK_TOGGLE_LIMIT = 2


class MessageNotFoundError(LookupError):
    """No chat message with that id belongs to the user"""


class UserProfile(BaseModel):
    clerk_user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    graduation_timeline: Optional[str] = None
    neurotypes: Optional[Dict[str, bool]] = None
    other_neurotype: Optional[str] = None
    ef_challenges: Optional[Dict[str, bool]] = None
    current_goal: Optional[str] = None
    current_goals: Optional[List[str]] = None
    job_field: Optional[str] = None
    interests: Optional[List[str]] = None
    seeking: Optional[List[str]] = None
    offers: Optional[List[str]] = None
    onboarded: Optional[bool] = None
    onboarded_at: Optional[str] = None


class ChatRecord(BaseModel):
    """A chat turn to insert into chat_messages"""
    user_id: str
    message: str
    response: str
    category: str
    persona: str
    session_id: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    pinecone_id: Optional[str] = None
    is_error: bool = False
    session_title: Optional[str] = None
    is_first_message: bool = False


class ChatSession(BaseModel):
    session_id: str
    session_title: str
    message_count: int
    last_message_at: str
    category: str
    first_message: str


class FeedbackResult(BaseModel):
    success: bool
    locked: bool
    toggle_count: int
    feedback: Optional[bool] = None
    message: Optional[str] = None


class SupabaseStore:
    """
    Supabase client for profiles and chat history.

    Usage:
        store = SupabaseStore()
        profile = store.get_user_profile("user_123")
        recent = store.get_recent_chat_context("user_123", limit=5)
    """

    def __init__(self, client: Optional[Client] = None, url: str = None, key: str = None):
        """
        Initialize the store.

        Args:
            client: Existing Supabase client (tests pass a stub)
            url: Supabase project URL (defaults to settings)
            key: Service role key (defaults to settings)
        """
        if client is None:
            settings = get_settings()
            url = url or settings.supabase_url
            key = key or settings.supabase_service_role_key
            if not url or not key:
                raise ValueError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")
            client = create_client(url, key)
            logger.info(f"Connected to Supabase at {url}")
        self.client = client

    # ==========================================
    # USER PROFILES
    # ==========================================

    def get_user_profile(self, clerk_user_id: str) -> Optional[Dict[str, Any]]:
        """Get a profile row, or None if the user has none"""
        response = (
            self.client.table(PROFILES_TABLE)
            .select("*")
            .eq("clerk_user_id", clerk_user_id)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return rows[0] if rows else None

    def upsert_user_profile(self, profile: UserProfile) -> Dict[str, Any]:
        """Create or update a profile keyed on clerk_user_id"""
        row = profile.model_dump()
        row["updated_at"] = datetime.now(timezone.utc).isoformat()

        response = (
            self.client.table(PROFILES_TABLE)
            .upsert(row, on_conflict="clerk_user_id")
            .execute()
        )
        rows = response.data or []
        return rows[0] if rows else row

    def is_user_onboarded(self, clerk_user_id: str) -> bool:
        profile = self.get_user_profile(clerk_user_id)
        return bool(profile) and profile.get("onboarded") is True

    # ==========================================
    # CHAT MESSAGES
    # ==========================================

    def store_chat_message(self, record: ChatRecord) -> Dict[str, Any]:
        response = self.client.table(MESSAGES_TABLE).insert(record.model_dump()).execute()
        rows = response.data or []
        return rows[0] if rows else record.model_dump()

    def get_chat_history(
        self,
        user_id: str,
        limit: int = 50,
        category: Optional[str] = None,
        include_errors: bool = False,
        session_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Get chat rows for a user, newest first.

        Args:
            user_id: Owner of the messages
            limit: Maximum number of rows
            category: Only this chat category
            include_errors: Include rows flagged is_error
            session_id: Only this chat session
        """
        query = (
            self.client.table(MESSAGES_TABLE)
            .select(
                "id, user_id, message, response, category, persona, metadata, "
                "pinecone_id, is_error, user_feedback, session_id, created_at"
            )
            .eq("user_id", user_id)
        )

        if category:
            query = query.eq("category", category)
        if session_id:
            query = query.eq("session_id", session_id)
        if not include_errors:
            query = query.eq("is_error", False)

        response = query.order("created_at", desc=True).limit(limit).execute()
        return response.data or []

    def get_recent_chat_context(self, user_id: str, limit: int = 5) -> List[Dict[str, str]]:
        """
        Last N turns as chat messages, oldest first.

        Each stored turn becomes a user message followed by an assistant message.
        """
        rows = self.get_chat_history(user_id, limit)

        context = []
        for row in reversed(rows):
            context.append({"role": "user", "content": row.get("message", "")})
            context.append({"role": "assistant", "content": row.get("response", "")})
        return context

    def get_chat_statistics(self, user_id: str) -> Dict[str, Any]:
        """Totals per category and the 7 most recent active days"""
        by_category = {"finance": 0, "career": 0, "daily_task": 0}
        try:
            response = (
                self.client.table(MESSAGES_TABLE)
                .select("category, created_at")
                .eq("user_id", user_id)
                .eq("is_error", False)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error getting chat statistics: {e}")
            return {"total_chats": 0, "by_category": by_category, "recent_activity": []}

        rows = response.data or []
        by_date: Dict[str, int] = {}
        for row in rows:
            category = row.get("category")
            by_category[category] = by_category.get(category, 0) + 1
            date = str(row.get("created_at", ""))[:10]
            by_date[date] = by_date.get(date, 0) + 1

        recent_activity = [
            {"date": date, "count": count}
            for date, count in sorted(by_date.items(), reverse=True)[:7]
        ]

        return {
            "total_chats": len(rows),
            "by_category": by_category,
            "recent_activity": recent_activity,
        }

    def delete_old_chat_messages(self, user_id: str, older_than_days: int = 90) -> int:
        """Delete a user's chat rows older than the cutoff; returns how many were removed"""
        cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        response = (
            self.client.table(MESSAGES_TABLE)
            .delete()
            .eq("user_id", user_id)
            .lt("created_at", cutoff.isoformat())
            .execute()
        )
        deleted = len(response.data or [])
        logger.info(f"Deleted {deleted} chat messages older than {older_than_days} days for user {user_id}")
        return deleted

    # ==========================================
    # SESSIONS
    # ==========================================

    def get_chat_sessions(self, user_id: str, limit: int = 10) -> List[ChatSession]:
        """Sessions for the sidebar, most recently started first"""
        response = (
            self.client.table(MESSAGES_TABLE)
            .select("session_id, session_title, category, message, created_at")
            .eq("user_id", user_id)
            .eq("is_error", False)
            .order("created_at", desc=False)
            .execute()
        )
        rows = response.data or []

        # Oldest first, so the first row seen per session is its opening message
        first_rows: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        counts: Dict[str, int] = {}
        for row in rows:
            sid = row.get("session_id")
            if sid is None:
                continue
            counts[sid] = counts.get(sid, 0) + 1
            if sid not in first_rows:
                first_rows[sid] = row

        ordered = sorted(first_rows.values(), key=lambda r: str(r.get("created_at", "")), reverse=True)

        return [
            ChatSession(
                session_id=row["session_id"],
                session_title=row.get("session_title") or "New Chat",
                message_count=counts[row["session_id"]],
                last_message_at=str(row.get("created_at", "")),
                category=row.get("category") or "daily_task",
                first_message=row.get("message", ""),
            )
            for row in ordered[:limit]
        ]

    def get_session_messages(self, user_id: str, session_id: str) -> List[Dict[str, Any]]:
        response = (
            self.client.table(MESSAGES_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("session_id", session_id)
            .eq("is_error", False)
            .order("created_at", desc=False)
            .execute()
        )
        return response.data or []

    def update_session_title(self, user_id: str, session_id: str, title: str):
        (
            self.client.table(MESSAGES_TABLE)
            .update({"session_title": title})
            .eq("user_id", user_id)
            .eq("session_id", session_id)
            .execute()
        )

    # ==========================================
    # FEEDBACK
    # ==========================================

    def update_chat_message_feedback(
        self,
        message_id: str,
        user_id: str,
        feedback: Optional[bool],
    ) -> FeedbackResult:
        """
        Record thumbs up/down (or None to clear) on a chat message.

        Every change counts toward the toggle limit, including clearing it.
        Once the limit is reached the feedback is locked.

        Raises:
            MessageNotFoundError: message does not exist for this user
        """
        response = (
            self.client.table(MESSAGES_TABLE)
            .select("id, user_feedback, metadata")
            .eq("id", message_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        if not rows:
            raise MessageNotFoundError(message_id)

        current = rows[0]
        metadata = current.get("metadata") or {}
        toggle_count = int(metadata.get("feedbackToggleCount", 0))

        if toggle_count >= FEEDBACK_TOGGLE_LIMIT:
            return FeedbackResult(
                success=False,
                locked=True,
                toggle_count=toggle_count,
                feedback=current.get("user_feedback"),
                message=f"Feedback is locked after {FEEDBACK_TOGGLE_LIMIT} selections",
            )

        toggle_count += 1
        updated = (
            self.client.table(MESSAGES_TABLE)
            .update({
                "user_feedback": feedback,
                "metadata": {**metadata, "feedbackToggleCount": toggle_count},
            })
            .eq("id", message_id)
            .eq("user_id", user_id)
            .execute()
        )
        updated_rows = updated.data or []

        return FeedbackResult(
            success=True,
            locked=toggle_count >= FEEDBACK_TOGGLE_LIMIT,
            toggle_count=toggle_count,
            feedback=updated_rows[0].get("user_feedback") if updated_rows else feedback,
        )
