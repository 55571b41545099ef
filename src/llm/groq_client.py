"""
Groq Client

Handles chat completions against the Groq API (primary provider).
"""

from typing import AsyncIterator, Dict, List, Optional
import logging

from groq import AsyncGroq

from config.settings import get_settings

logger = logging.getLogger(__name__)

GROQ_MODELS = {
    "LLAMA_70B": "llama-3.1-70b-versatile",  # Best balance
    "LLAMA_8B": "llama-3.1-8b-instant",      # Fastest
    "MIXTRAL": "mixtral-8x7b-32768",         # Long context
}


class GroqClient:
    """
    Client for the Groq chat API.

    Usage:
        client = GroqClient()
        text = await client.chat_completion([{"role": "user", "content": "hi"}])
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """
        Initialize Groq client.

        Args:
            api_key: Groq API key (defaults to settings)
            model: Model to use (defaults to settings.groq_model)
        """
        settings = get_settings()
        self.api_key = api_key or settings.groq_api_key
        self.model = model or settings.groq_model
        self.client = None

        if self.api_key:
            self.client = AsyncGroq(api_key=self.api_key)

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        """
        Generate a chat reply.

        Args:
            messages: OpenAI-style role/content messages
            model: Override the default model
            temperature: Response temperature
            max_tokens: Maximum response tokens

        Returns:
            Reply text. API errors propagate so the caller can fall back.
        """
        if not self.client:
            return self._mock_response(messages)

        response = await self.client.chat.completions.create(
            model=model or self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if response.choices:
            return response.choices[0].message.content or ""
        return ""

    async def structured_output(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.3,
    ) -> str:
        """Chat completion constrained to a JSON object; returns the raw JSON text"""
        if not self.client:
            return '{"detected_persona": "daily_tasks", "confidence": 0.0, "reasoning": "mock"}'

        response = await self.client.chat.completions.create(
            model=model or self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=512,
            response_format={"type": "json_object"},
        )
        if response.choices:
            return response.choices[0].message.content or "{}"
        return "{}"

    async def stream_chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """Yield reply text chunks as they arrive"""
        if not self.client:
            yield self._mock_response(messages)
            return

        stream = await self.client.chat.completions.create(
            model=model or self.model,
            messages=messages,
            temperature=0.7,
            max_tokens=1024,
            stream=True,
        )
        async for chunk in stream:
            content = chunk.choices[0].delta.content if chunk.choices else None
            if content:
                yield content

    def _mock_response(self, messages: List[Dict[str, str]]) -> str:
        """Generate a mock response when API key is not available"""
        last_user = next(
            (m["content"] for m in reversed(messages) if m.get("role") == "user"), ""
        )
        return f"[MOCK RESPONSE - No Groq API key configured] You said: {last_user[:200]}"
