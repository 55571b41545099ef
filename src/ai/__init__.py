"""
AI module - Request queue and context assembly
"""

from .queue import AIRequestQueue, Provider, QueueStatus, get_ai_queue
from .context import AIContext, ContextAssembler, build_profile_summary, format_context_for_prompt

__all__ = [
    "AIRequestQueue",
    "Provider",
    "QueueStatus",
    "get_ai_queue",
    "AIContext",
    "ContextAssembler",
    "build_profile_summary",
    "format_context_for_prompt",
]
