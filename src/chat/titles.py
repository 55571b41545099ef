"""
Session titles from the opening message of a chat.
"""

DEFAULT_TITLE = "New Chat"
MAX_TITLE_LENGTH = 40

QUESTION_STARTERS = [
    'how do i', 'how can i', 'how to', 'can you', 'could you',
    'help me', 'i need', 'i want', 'tell me', 'what is', 'what are',
    'explain', 'show me'
]

FILLER_WORDS = {'the', 'and', 'for', 'with'}


def generate_session_title(first_message: str) -> str:
    """
    Keyword title for a chat session.

    Drops common question starters, keeps up to four meaningful words,
    title-cases them and caps the length at 40 characters.
    """
    processed = (first_message or "").lower().strip()
    for starter in QUESTION_STARTERS:
        processed = processed.replace(starter, '', 1)

    words = [
        word for word in processed.split(' ')
        if len(word) > 2 and word not in FILLER_WORDS
    ][:4]

    title = ' '.join(word[:1].upper() + word[1:] for word in words)

    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH - 3] + '...'

    return title or DEFAULT_TITLE
