"""
Keyword extraction for agent memories.

Deliberately simple: lowercase, strip punctuation (CJK characters are
kept), drop one-character tokens and stop words, return the most frequent
words. Chinese runs without spaces stay a single token.
"""

import re
from collections import Counter

STOP_WORDS = frozenset({
    "的", "是", "在", "了", "和", "与",
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
})

MAX_KEYWORDS = 10

_PUNCTUATION = re.compile(r"[^\w\s一-鿿]")


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """
    Return up to ``limit`` keywords ordered by frequency.

    Ties keep first-occurrence order.

    Example:
        extract_keywords("Python async: async tasks in Python")
        # ["python", "async", "tasks"]
    """
    cleaned = _PUNCTUATION.sub("", text.lower())
    words = [
        word for word in cleaned.split()
        if len(word) > 1 and word not in STOP_WORDS
    ]
    return [word for word, _ in Counter(words).most_common(limit)]
