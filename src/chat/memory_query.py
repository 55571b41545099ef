"""
Memory recall query detection

Recognizes messages like "What am I forgetting?", "What did I say I'd do
today?" and "Show my usual patterns".
"""

from typing import Optional

FORGETTING_PATTERNS = [
    'what am i forgetting',
    'what did i forget',
    'what have i forgotten',
    'remind me what i',
    'what did i mention',
    'what did i say',
    'what did i tell you',
    'what did i write',
    'what did i dump',
    'what did i brain dump',
]

TODAY_PATTERNS = [
    "what did i say i'd do today",
    'what did i say i would do today',
    "what did i say i'd do",
    'what did i say i would do',
    'what did i say today',
    'what did i mention today',
    'what did i tell you today',
    'what am i supposed to do today',
    'what should i do today',
    'what did i plan today',
]

PATTERN_PATTERNS = [
    'show my usual patterns',
    'show my patterns',
    'what are my patterns',
    'what patterns do i have',
    'show patterns',
    'my patterns',
    'usual patterns',
    'recurring patterns',
]

ALL_PATTERNS = FORGETTING_PATTERNS + TODAY_PATTERNS + PATTERN_PATTERNS


def _normalize(query) -> str:
    if not query or not isinstance(query, str):
        return ""
    return query.lower().strip().replace("’", "'")


def is_memory_recall_query(query: str) -> bool:
    """Check if a message asks the coach to recall earlier conversations"""
    normalized = _normalize(query)
    if not normalized:
        return False
    return any(pattern in normalized for pattern in ALL_PATTERNS)


def get_memory_query_type(query: str) -> Optional[str]:
    """Classify a memory query as 'patterns', 'today' or 'forgetting' (None otherwise)"""
    normalized = _normalize(query)
    if not normalized:
        return None

    if 'pattern' in normalized:
        return 'patterns'

    if any(word in normalized for word in ('today', 'supposed to do', 'plan')):
        return 'today'

    if any(word in normalized for word in ('forget', 'remind me', 'mention', 'say', 'tell', 'write', 'dump')):
        return 'forgetting'

    return None
