"""
Tests for memory recall detection and session titles
"""

from src.chat.memory_query import get_memory_query_type, is_memory_recall_query
from src.chat.titles import generate_session_title


class TestMemoryQuery:
    """Tests for memory recall query detection"""

    def test_recall_queries(self):
        queries = [
            "What am I forgetting?",
            "Hey, what did I say I'd do today?",
            "Show my usual patterns",
            "remind me what I was worried about",
        ]

        for query in queries:
            assert is_memory_recall_query(query), f"Failed for: {query}"

    def test_curly_apostrophe(self):
        assert is_memory_recall_query("What did I say I’d do today?")

    def test_non_recall_queries(self):
        for query in ["Help me write a cover letter", "", None, 42]:
            assert not is_memory_recall_query(query), f"Failed for: {query!r}"

    def test_query_types(self):
        test_cases = [
            ("Show my usual patterns", "patterns"),
            ("What did I plan today?", "today"),
            ("What am I supposed to do?", "today"),
            ("What am I forgetting?", "forgetting"),
            ("What did I tell you?", "forgetting"),
            ("Good morning", None),
            ("", None),
        ]

        for query, expected in test_cases:
            assert get_memory_query_type(query) == expected, f"Failed for: {query}"


class TestSessionTitle:
    """Tests for generate_session_title"""

    def test_strips_question_starters(self):
        assert generate_session_title("How do I write a cover letter for nursing jobs?") == "Write Cover Letter Nursing"

    def test_drops_short_and_filler_words(self):
        assert generate_session_title("I need to clean the kitchen and do laundry") == "Clean Kitchen Laundry"

    def test_truncates_long_titles(self):
        title = generate_session_title("internationalization responsibilities microcontrollers telecommunications")
        assert len(title) == 40
        assert title.endswith("...")

    def test_default_title(self):
        assert generate_session_title("hi") == "New Chat"
        assert generate_session_title("") == "New Chat"
