"""Lexical heuristics: capture filter, categorizer, similarity, contradiction.

These are lexical approximations. The contradiction check is a polarity-flip
detector, not an entailment model: two sentences that merely
co-mention a negation cue and a positive cue with enough word overlap will be
flagged, e.g. "I don't only like X" vs "I like X".
"""

import re
from typing import Set

from pinecone_memory.types import MemoryCategory

MIN_CAPTURE_LENGTH = 20
MAX_CAPTURE_LENGTH = 2000

CONTRADICTION_MIN_SIMILARITY = 0.35

_PREFERENCE_RE = re.compile(r"\b(prefer|always|never|like|dislike|hate|love|want|avoid)\b", re.IGNORECASE)
_DECISION_RE = re.compile(r"\b(decided|decision|chose|chosen|go with|pick|selected)\b", re.IGNORECASE)
_PROJECT_RE = re.compile(r"\b(project|repo|codebase|stack|architecture)\b", re.IGNORECASE)

CAPTURE_PATTERNS = [
    _PREFERENCE_RE,
    _DECISION_RE,
    _PROJECT_RE,
    re.compile(r"\b(use|using|switch to|migrate|adopt)\b.*\b(for|instead|over)\b", re.IGNORECASE),
    re.compile(r"\b(remember|note|important|keep in mind|fyi)\b", re.IGNORECASE),
    re.compile(r"\b(convention|pattern|style|standard|rule)\b", re.IGNORECASE),
    re.compile(r"\b(api key|endpoint|url|config|credentials)\b", re.IGNORECASE),
    re.compile(r"\b(workflow|process|routine|habit)\b", re.IGNORECASE),
]

# Categorizer rules, first match wins. "pick" is a capture cue but not a
# decision label.
_CATEGORY_RULES = [
    (re.compile(r"\b(prefer|always|never|like|dislike|hate|love|want|avoid)\b"), MemoryCategory.PREFERENCE),
    (re.compile(r"\b(decided|decision|chose|chosen|go with|selected)\b"), MemoryCategory.DECISION),
    (re.compile(r"\b(project|repo|codebase|stack|architecture)\b"), MemoryCategory.PROJECT),
    (re.compile(r"\b(bug|error|fix|debug|issue|crash|exception|stack trace)\b"), MemoryCategory.TECHNICAL),
    (re.compile(r"\b(is|are|was|were|has|have)\b"), MemoryCategory.FACT),
]

NEGATION_RE = re.compile(
    r"\b(not|never|no longer|dislikes?|hates?|avoids?)\b|\b\w+n['’]t\b",
    re.IGNORECASE,
)
POSITIVE_RE = re.compile(r"\b(likes?|loves?|prefers?|always|wants?|uses?|using)\b", re.IGNORECASE)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


# ---------------------------------------------------------------------------
# Capture filter
# ---------------------------------------------------------------------------


def should_capture(text: str) -> bool:
    """Return True if ``text`` looks like a durable fact worth storing."""
    if not text or len(text) < MIN_CAPTURE_LENGTH or len(text) > MAX_CAPTURE_LENGTH:
        return False
    return any(pattern.search(text) for pattern in CAPTURE_PATTERNS)


# ---------------------------------------------------------------------------
# Categorizer
# ---------------------------------------------------------------------------


def detect_category(text: str) -> str:
    """Assign a coarse category label. Deterministic, case-insensitive."""
    lower = (text or "").lower()
    for pattern, category in _CATEGORY_RULES:
        if pattern.search(lower):
            return category
    return MemoryCategory.GENERAL


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------


def tokenize(text: str) -> Set[str]:
    """Lowercased alphanumeric tokens longer than two characters."""
    if not text:
        return set()
    return {tok for tok in _NON_ALNUM_RE.sub(" ", text.lower()).split() if len(tok) > 2}


def similarity(a: str, b: str) -> float:
    """Jaccard index of the two token sets (0.0 if either is empty)."""
    tokens_a = tokenize(a)
    tokens_b = tokenize(b)
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


def is_contradiction(new_text: str, old_text: str) -> bool:
    """Heuristic polarity flip between two topically overlapping texts."""
    if similarity(new_text, old_text) < CONTRADICTION_MIN_SIMILARITY:
        return False
    new_neg = bool(NEGATION_RE.search(new_text))
    old_neg = bool(NEGATION_RE.search(old_text))
    new_pos = bool(POSITIVE_RE.search(new_text))
    old_pos = bool(POSITIVE_RE.search(old_text))
    return (new_neg and old_pos) or (old_neg and new_pos)
