"""
Query Normalizer

Canonicalizes raw query text before classification.
"""

from typing import List, Optional
import re


STOP_WORDS = {
    "a", "an", "and", "are", "at", "be", "by", "can", "do", "for", "from",
    "get", "give", "how", "i", "in", "is", "it", "me", "my", "of", "on",
    "or", "please", "show", "tell", "the", "to", "what", "whats", "what's",
    "with", "you",
}

_TOKEN_RE = re.compile(r"[a-z0-9][a-z0-9_\-']*")


def normalize(text: Optional[str]) -> str:
    """Lower-case and trim. Empty or missing input yields an empty string."""
    if not text:
        return ""
    return text.lower().strip()


def tokenize(normalized_text: str) -> List[str]:
    """
    Split normalized text into query terms.

    Stop words and single characters are dropped, order is kept and
    duplicates are removed.
    """
    terms: List[str] = []
    for token in _TOKEN_RE.findall(normalized_text):
        token = token.strip("-'")
        if len(token) < 2 or token in STOP_WORDS or token in terms:
            continue
        terms.append(token)
    return terms
