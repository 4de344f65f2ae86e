"""Framework scoping and query term helpers shared by all providers."""

import re
from typing import FrozenSet, List, Optional

COMMON_FRAMEWORK = "common"

# Terms shorter than this never produce keyword matches.
MIN_TERM_LENGTH = 3

STOP_WORDS: FrozenSet[str] = frozenset({
    "a", "about", "after", "all", "also", "an", "and", "any", "are", "as",
    "at", "be", "been", "but", "by", "can", "could", "do", "does", "for",
    "from", "has", "have", "how", "i", "if", "in", "into", "is", "it",
    "its", "may", "more", "my", "no", "not", "of", "on", "or", "other",
    "our", "should", "so", "some", "such", "than", "that", "the", "their",
    "them", "then", "there", "these", "they", "this", "to", "use", "using",
    "was", "we", "what", "when", "where", "which", "while", "who", "why",
    "will", "with", "would", "you", "your",
})

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def normalize_framework(framework: Optional[str]) -> str:
    """Canonical form of a framework value; ``None`` becomes ``''``."""
    if not framework or not isinstance(framework, str):
        return ""
    return framework.strip().lower()


def framework_matches(filter_framework: Optional[str], chunk_framework: Optional[str]) -> bool:
    """Whether a chunk tagged ``chunk_framework`` is visible under ``filter_framework``.

    ===================  ===================  ======
    filter               chunk framework      result
    ===================  ===================  ======
    ``''``               anything             True
    anything             ``common``           True
    ``flow``             ``flow``             True
    ``hilla``            ``flow``             False
    ===================  ===================  ======
    """
    wanted = normalize_framework(filter_framework)
    if not wanted:
        return True
    actual = normalize_framework(chunk_framework)
    if actual == COMMON_FRAMEWORK:
        return True
    return wanted == actual


def tokenize(text: str) -> List[str]:
    """Lower-case alphanumeric tokens of ``text``."""
    if not text:
        return []
    return _TOKEN_RE.findall(text.lower())


def extract_keyword_terms(
    text: str,
    min_length: int = MIN_TERM_LENGTH,
    stop_words: FrozenSet[str] = STOP_WORDS,
) -> List[str]:
    """Tokens of ``text`` that carry keyword signal.

    Stop words and tokens shorter than ``min_length`` are dropped.
    """
    return [t for t in tokenize(text) if len(t) >= min_length and t not in stop_words]
