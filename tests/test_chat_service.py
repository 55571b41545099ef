"""
Tests for the chat turn pipeline
"""

import asyncio

import pytest

from config.settings import get_settings
from src.ai.queue import AIRequestQueue
from src.chat.service import ChatService, ChatServiceError
from src.llm.groq_client import GroqClient
from src.storage.supabase_store import UserProfile
from src.vector.pinecone_store import ChatVectorStore

from fakes import FakeEmbedder, FakeGemini, FakeGroq, FakeIndex


async def no_sleep(seconds):
    return None


def make_service(store, groq=None, gemini=None, index=None):
    queue = AIRequestQueue(sleep=no_sleep)
    vectors = ChatVectorStore(index=index or FakeIndex(), embedder=FakeEmbedder())
    return ChatService(store, vectors, queue, groq or FakeGroq(), gemini or FakeGemini())


class TestChatService:
    """Tests for ChatService.respond"""

    def test_first_message_starts_session(self, store, db_client):
        store.upsert_user_profile(UserProfile(clerk_user_id="u1", name="Sam", onboarded=True))
        index = FakeIndex()
        groq = FakeGroq(replies=["Here's a plan for your resume."])
        service = make_service(store, groq=groq, index=index)

        reply = asyncio.run(service.respond("u1", "How do I fix my resume for marketing jobs?"))

        assert reply.message == "Here's a plan for your resume."
        assert reply.persona == "career"
        assert reply.persona_icon == "💼"
        assert reply.provider == "groq"
        assert reply.session_title == "Fix Resume Marketing Jobs?"
        assert reply.session_id

        rows = db_client.tables["chat_messages"]
        assert len(rows) == 1
        assert rows[0]["is_first_message"] is True
        assert rows[0]["session_id"] == reply.session_id
        assert rows[0]["category"] == "career"
        assert rows[0]["pinecone_id"].startswith("chat_u1_")
        assert reply.message_id == rows[0]["id"]
        assert index.upserts[0]["metadata"]["fullResponse"] == "Here's a plan for your resume."

        system_prompt = groq.calls[0][0]["content"]
        assert "CAREER COACH" in system_prompt
        assert "=== USER PROFILE ===\nUser: Sam" in system_prompt

    def test_existing_session_keeps_id(self, store, db_client):
        service = make_service(store)

        reply = asyncio.run(service.respond("u1", "budget help", session_id="sess-1"))

        assert reply.session_id == "sess-1"
        assert reply.session_title is None
        assert db_client.tables["chat_messages"][0]["is_first_message"] is False

    def test_low_confidence_detection_uses_daily_tasks(self, store):
        groq = FakeGroq(detection='{"detected_persona": "finance", "confidence": 0.3}')
        reply = asyncio.run(make_service(store, groq=groq).respond("u1", "ugh"))
        assert reply.persona == "daily_tasks"
        assert reply.category == "daily_task"

    def test_unconfigured_groq_uses_keywords(self, store):
        groq = FakeGroq(configured=False, detection="never used")
        reply = asyncio.run(make_service(store, groq=groq).respond("u1", "my credit card bill is huge"))
        assert reply.persona == "finance"

    def test_falls_back_to_gemini(self, store, db_client):
        groq = FakeGroq(fail=True)
        gemini = FakeGemini(reply="From Gemini")
        reply = asyncio.run(make_service(store, groq=groq, gemini=gemini).respond("u1", "hello"))

        assert reply.message == "From Gemini"
        assert reply.provider == "gemini"
        assert db_client.tables["chat_messages"][0]["metadata"]["provider"] == "gemini"

    def test_all_providers_fail(self, store, db_client):
        service = make_service(store, groq=FakeGroq(fail=True), gemini=FakeGemini(fail=True))

        with pytest.raises(ChatServiceError):
            asyncio.run(service.respond("u1", "hello"))

        rows = db_client.tables["chat_messages"]
        assert len(rows) == 1
        assert rows[0]["is_error"] is True

    def test_memory_recall_prompt(self, store):
        groq = FakeGroq()
        reply = asyncio.run(make_service(store, groq=groq).respond("u1", "What am I forgetting?"))

        assert reply.memory_query_type == "forgetting"
        system_prompt = groq.calls[0][0]["content"]
        assert "recall what they told you before" in system_prompt
        assert "Remind them of 2-3 key things" in system_prompt

    def test_breakdown_hint(self, store):
        groq = FakeGroq(detection='{"detected_persona": "daily_tasks", "confidence": 0.9}')
        reply = asyncio.run(make_service(store, groq=groq).respond("u1", "I'm overwhelmed, my room is a disaster"))

        assert reply.needs_breakdown
        assert "micro-steps with rough time estimates" in groq.calls[0][0]["content"]

    def test_storage_failure_does_not_fail_turn(self):
        class BrokenStore:
            def get_user_profile(self, user_id):
                raise ConnectionError("down")

            def store_chat_message(self, record):
                raise ConnectionError("down")

        index = FakeIndex()
        reply = asyncio.run(make_service(BrokenStore(), index=index).respond("u1", "hello"))

        assert reply.message
        assert reply.message_id is None
        assert reply.context_degraded

    def test_gemini_only_deployment(self, store, db_client):
        groq = GroqClient(api_key=None)
        groq.client = None
        gemini = FakeGemini(reply="Let's make a budget together.")

        reply = asyncio.run(make_service(store, groq=groq, gemini=gemini).respond("u1", "help me budget"))

        assert reply.provider == "gemini"
        assert reply.message == "Let's make a budget together."
        assert len(gemini.calls) == 1
        assert db_client.tables["chat_messages"][0]["response"] == "Let's make a budget together."

    def test_mock_reply_when_no_provider_configured(self, store):
        groq = GroqClient(api_key=None)
        groq.client = None
        gemini = FakeGemini()
        gemini.configured = False

        reply = asyncio.run(make_service(store, groq=groq, gemini=gemini).respond("u1", "hello"))

        assert reply.provider == "groq"
        assert reply.message.startswith("[MOCK RESPONSE")
        assert gemini.calls == []

    def test_detector_uses_configured_threshold(self, store, monkeypatch):
        monkeypatch.setenv("PERSONA_CONFIDENCE_THRESHOLD", "0.95")
        get_settings.cache_clear()
        try:
            service = make_service(store, groq=FakeGroq(detection='{"detected_persona": "career", "confidence": 0.9}'))

            assert service.detector.confidence_threshold == 0.95
            assert asyncio.run(service.respond("u1", "resume help")).persona == "daily_tasks"
        finally:
            get_settings.cache_clear()
