"""Text normalisation shared by the entity extractor and scorers."""
from __future__ import annotations

import re
from typing import List, Optional

MIN_TOKEN_LENGTH = 3
NON_ALNUM_PATTERN = re.compile(r"[^a-z0-9\s]")
WHITESPACE_PATTERN = re.compile(r"\s+")

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
        "be", "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "must", "shall", "can", "need", "this", "that",
        "these", "those", "i", "you", "he", "she", "it", "we", "they", "what",
        "which", "who", "when", "where", "why", "how", "all", "each", "every",
        "both", "few", "more", "most", "other", "some", "such", "no", "not",
        "only", "same", "so", "than", "too", "very", "just", "also", "now",
        "here", "there", "our", "your", "my", "his", "her", "its", "their",
        "if", "then", "because", "while", "although", "however", "please",
        "thanks", "thank", "regards", "hi", "hello", "dear", "best", "sincerely",
    }
)


def normalize_text(text: Optional[str]) -> str:
    """Lowercase ``text`` and replace anything but ASCII letters, digits and whitespace."""
    return NON_ALNUM_PATTERN.sub(" ", (text or "").lower())


def tokenize(text: Optional[str]) -> List[str]:
    """Return the normalised tokens of ``text`` with short tokens and stop words removed."""
    return [
        token
        for token in WHITESPACE_PATTERN.split(normalize_text(text))
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS
    ]


def combine(*parts: Optional[str]) -> str:
    return " ".join(part or "" for part in parts)
