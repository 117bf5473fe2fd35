"""Recall assembly: format search hits as an injectable context block."""

from typing import Iterable, List, Optional

from pinecone_memory.text import MEMORY_CLOSE_TAG, MEMORY_OPEN_TAG


def format_hit(hit) -> str:
    """``- (0.87 [preference]) text``; the bracket is omitted without a category."""
    label = f"{hit.score:.2f} [{hit.category}]" if hit.category else f"{hit.score:.2f}"
    return f"- ({label}) {hit.text}"


def usable_hits(hits: Iterable, min_score: float = 0.0) -> List:
    """Hits with non-blank text scoring at least ``min_score``."""
    return [h for h in hits if h.text and h.text.strip() and h.score >= min_score]


def assemble_context(hits: Iterable, min_score: float = 0.0) -> Optional[str]:
    """Wrap usable hits in the memory delimiter tags, or return None."""
    lines = [format_hit(h) for h in usable_hits(hits, min_score)]
    if not lines:
        return None
    return "\n".join([MEMORY_OPEN_TAG, *lines, MEMORY_CLOSE_TAG])
