"""
Tests for the LLM provider clients
"""

import asyncio
from types import SimpleNamespace

from src.llm.gemini_client import GeminiClient, to_gemini_history
from src.llm.groq_client import GroqClient


class TestGeminiHistory:
    """Tests for to_gemini_history"""

    def test_system_prompt_prefixed_to_last_turn(self):
        history, prompt = to_gemini_history([
            {"role": "system", "content": "Be kind."},
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "help me plan"},
        ])

        assert history == [
            {"role": "user", "parts": ["hi"]},
            {"role": "model", "parts": ["hello"]},
        ]
        assert prompt == "Be kind.\n\nUser: help me plan"

    def test_without_system_prompt(self):
        history, prompt = to_gemini_history([{"role": "user", "content": "hi"}])
        assert history == []
        assert prompt == "hi"


class TestMockResponses:
    """Clients without API keys answer with mock text"""

    def test_groq_mock(self):
        client = GroqClient(api_key="")
        client.client = None

        text = asyncio.run(client.chat_completion([{"role": "user", "content": "hello"}]))

        assert not client.configured
        assert text.startswith("[MOCK RESPONSE")
        assert text.endswith("hello")

    def test_groq_structured_mock(self):
        client = GroqClient(api_key="")
        client.client = None
        assert "daily_tasks" in asyncio.run(client.structured_output([]))

    def test_gemini_mock(self):
        client = GeminiClient(api_key="")
        client.configured = False

        text = asyncio.run(client.chat([{"role": "user", "content": "hello"}]))

        assert text.startswith("[MOCK RESPONSE")


def chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeStream:
    def __init__(self, chunks):
        self.chunks = list(chunks)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.chunks:
            raise StopAsyncIteration
        return self.chunks.pop(0)


class TestStreamChat:
    """Tests for GroqClient.stream_chat"""

    def collect(self, client, messages):
        async def run():
            return [piece async for piece in client.stream_chat(messages)]
        return asyncio.run(run())

    def test_yields_content_chunks(self):
        seen = {}

        async def create(**kwargs):
            seen.update(kwargs)
            return FakeStream([chunk("Start "), chunk(None), SimpleNamespace(choices=[]), chunk("small.")])

        client = GroqClient(api_key="")
        client.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        pieces = self.collect(client, [{"role": "user", "content": "help"}])

        assert pieces == ["Start ", "small."]
        assert seen["stream"] is True
        assert seen["model"] == client.model

    def test_mock_stream(self):
        client = GroqClient(api_key="")
        client.client = None

        pieces = self.collect(client, [{"role": "user", "content": "hello"}])

        assert len(pieces) == 1
        assert pieces[0].startswith("[MOCK RESPONSE")
