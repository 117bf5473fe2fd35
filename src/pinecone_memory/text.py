"""Text normalization for conversational input.

Turns raw message text into candidate facts: strips our own recalled-memory
injections, splits into sentences, and normalizes list markers and whitespace.
"""

import re
from typing import Any, List

MEMORY_OPEN_TAG = "<relevant-memories>"
MEMORY_CLOSE_TAG = "</relevant-memories>"

_MEMORY_BLOCK_RE = re.compile(
    re.escape(MEMORY_OPEN_TAG) + r".*?" + re.escape(MEMORY_CLOSE_TAG),
    re.DOTALL,
)
_STRAY_TAG_RE = re.compile(re.escape(MEMORY_OPEN_TAG) + "|" + re.escape(MEMORY_CLOSE_TAG))

# "- ", "* ", "+ ", "• ", "1. ", "2) ", "(3) " and runs of them ("- 1. ")
_LIST_MARKER_RE = re.compile(r"^(?:(?:[-*+•‣◦]|\(?\d+[.)])(?:\s+|$))+")
_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+|\n+")


def normalize(raw: str) -> str:
    """Collapse whitespace, trim, and strip leading bullet/number markers.

    Idempotent: ``normalize(normalize(x)) == normalize(x)``.
    """
    if not raw:
        return ""
    text = _WHITESPACE_RE.sub(" ", raw).strip()
    return _LIST_MARKER_RE.sub("", text).strip()


def strip_injected_memory_block(raw: str) -> str:
    """Remove every ``<relevant-memories>...</relevant-memories>`` span.

    Keeps the system from re-ingesting its own recall injections as facts.
    """
    if not raw:
        return ""
    text = raw
    # Removing one tag can splice its neighbours into a new one; repeat to a fixed point
    while True:
        stripped = _STRAY_TAG_RE.sub("", _MEMORY_BLOCK_RE.sub("", text))
        if stripped == text:
            break
        text = stripped
    return text.strip()


def split_into_sentences(text: str) -> List[str]:
    """Split on terminal punctuation + whitespace or on newlines.

    Each piece is normalized; empty pieces are dropped.
    """
    if not text:
        return []
    pieces = (normalize(p) for p in _SENTENCE_SPLIT_RE.split(text))
    return [p for p in pieces if p]


def message_text(message: Any) -> str:
    """Project a host message's ``content`` to plain text.

    Strings are used as is. Lists of content blocks contribute the ``text`` of
    every ``{"type": "text"}`` block, joined by newlines.
    """
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [
            block.get("text", "")
            for block in content
            if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
        ]
        return "\n".join(parts)
    return ""
