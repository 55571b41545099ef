"""
Gemini Client

Handles chat completions against Google Gemini (secondary provider).
"""

from typing import Dict, List, Optional, Tuple
import logging

import google.generativeai as genai

from config.settings import get_settings

logger = logging.getLogger(__name__)


def to_gemini_history(messages: List[Dict[str, str]]) -> Tuple[List[Dict], str]:
    """
    Convert role/content messages to Gemini chat history plus the final prompt.

    Gemini has no system role, so the system message is prefixed to the
    last user turn. Assistant turns use the "model" role.
    """
    system_prompt = next((m["content"] for m in messages if m.get("role") == "system"), "")
    turns = [
        {
            "role": "model" if m.get("role") == "assistant" else "user",
            "parts": [m.get("content", "")],
        }
        for m in messages
        if m.get("role") != "system"
    ]

    if not turns:
        return [], system_prompt

    last_text = turns[-1]["parts"][0]
    prompt = f"{system_prompt}\n\nUser: {last_text}" if system_prompt else last_text
    return turns[:-1], prompt


class GeminiClient:
    """
    Client for the Gemini API.

    Usage:
        client = GeminiClient()
        text = await client.chat(messages)
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        settings = get_settings()
        self.api_key = api_key or settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.configured = bool(self.api_key)

        if self.configured:
            genai.configure(api_key=self.api_key)

    async def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 400,
    ) -> str:
        """
        Generate a chat reply.

        Returns:
            Reply text. API errors propagate to the caller.
        """
        history, prompt = to_gemini_history(messages)

        if not self.configured:
            return f"[MOCK RESPONSE - No Gemini API key configured] You said: {prompt[-200:]}"

        model = genai.GenerativeModel(
            self.model,
            generation_config=genai.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
            ),
        )
        chat = model.start_chat(history=history)
        response = await chat.send_message_async(prompt)
        return response.text
