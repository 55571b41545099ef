"""
Chat module - Chat turn orchestration, session titles, memory recall detection
"""

from .service import ChatService, ChatReply, ChatServiceError
from .breakdown import BreakdownGenerator, BreakdownStep, TaskBreakdown, explicitly_requests_breakdown
from .titles import generate_session_title
from .memory_query import is_memory_recall_query, get_memory_query_type

__all__ = [
    "ChatService",
    "ChatReply",
    "ChatServiceError",
    "BreakdownGenerator",
    "BreakdownStep",
    "TaskBreakdown",
    "explicitly_requests_breakdown",
    "generate_session_title",
    "is_memory_recall_query",
    "get_memory_query_type",
]
