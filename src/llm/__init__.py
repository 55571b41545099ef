"""
LLM module - Groq and Gemini chat clients
"""

from .groq_client import GroqClient, GROQ_MODELS
from .gemini_client import GeminiClient

__all__ = ["GroqClient", "GROQ_MODELS", "GeminiClient"]
