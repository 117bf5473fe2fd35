"""Fact extraction strategies.

Two variants share one contract, ``await extractor.extract(messages)``, and
both return an :class:`ExtractionResult` instead of raising:

* :class:`HeuristicExtractor` runs locally and cannot fail.
* :class:`LLMExtractor` delegates to the completion backend; a backend failure
  comes back as ``result.error`` so the capture pipeline can fall back to the
  heuristic variant without an exception crossing into the agent turn.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from pinecone_memory.heuristics import should_capture, similarity
from pinecone_memory.text import message_text, normalize, split_into_sentences, strip_injected_memory_block
from pinecone_memory.types import Provenance

logger = logging.getLogger("pinecone_memory.extraction")

CAPTURE_ROLES = ("user", "assistant")
BATCH_DUPLICATE_SIMILARITY = 0.9
DEFAULT_RECENT_LIMIT = 10


@dataclass
class ExtractionResult:
    """Facts from one extraction attempt, or the error that stopped it."""

    facts: List[str] = field(default_factory=list)
    provenance: str = Provenance.TURN_CAPTURE
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def recent_messages(messages, limit: int = DEFAULT_RECENT_LIMIT) -> list:
    """The trailing ``limit`` messages of a turn (all of them if ``limit <= 0``)."""
    messages = list(messages or [])
    return messages[-limit:] if limit > 0 else messages


def _cleaned_texts(messages: Iterable[Any], roles) -> List[str]:
    """Text of each message with an allowed role, memory injections removed."""
    texts = []
    for msg in messages:
        if not isinstance(msg, dict) or msg.get("role") not in roles:
            continue
        text = strip_injected_memory_block(message_text(msg))
        if text:
            texts.append(text)
    return texts


def dedupe_batch(candidates: Iterable[str], threshold: float = BATCH_DUPLICATE_SIMILARITY) -> List[str]:
    """Drop near-identical candidates; the first occurrence wins."""
    accepted: List[str] = []
    for candidate in candidates:
        if any(similarity(candidate, prior) > threshold for prior in accepted):
            continue
        accepted.append(candidate)
    return accepted


class HeuristicExtractor:
    """Pattern-based local extraction.

    ``granularity="message"`` keeps whole user/assistant messages that pass the
    capture filter (turn capture). ``granularity="sentence"`` splits user
    messages into sentences and keeps those inside the length bounds (summary).
    """

    def __init__(
        self,
        granularity: str = "message",
        min_length: int = 15,
        max_length: int = 280,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
    ) -> None:
        self.granularity = granularity
        self.min_length = min_length
        self.max_length = max_length
        self.recent_limit = recent_limit

    @classmethod
    def from_settings(cls, settings, granularity: Optional[str] = None) -> "HeuristicExtractor":
        return cls(
            granularity=granularity or settings.heuristic_granularity,
            min_length=settings.min_fact_length,
            max_length=settings.max_fact_length,
            recent_limit=settings.recent_message_limit,
        )

    @property
    def provenance(self) -> str:
        return Provenance.SUMMARY if self.granularity == "sentence" else Provenance.TURN_CAPTURE

    def candidates(self, messages) -> List[str]:
        window = recent_messages(messages, self.recent_limit)
        if self.granularity == "sentence":
            # User text only: assistant speculation is not a fact about the user
            out = []
            for text in _cleaned_texts(window, ("user",)):
                for sentence in split_into_sentences(text):
                    if self.min_length <= len(sentence) <= self.max_length and should_capture(sentence):
                        out.append(sentence)
            return out
        return [t for t in (normalize(t) for t in _cleaned_texts(window, CAPTURE_ROLES)) if should_capture(t)]

    async def extract(self, messages) -> ExtractionResult:
        return ExtractionResult(facts=dedupe_batch(self.candidates(messages)), provenance=self.provenance)


class LLMExtractor:
    """Extraction delegated to an LLM backend (user-authored text only)."""

    provenance = Provenance.LLM_EXTRACT

    def __init__(self, backend, recent_limit: int = DEFAULT_RECENT_LIMIT) -> None:
        self.backend = backend
        self.recent_limit = recent_limit

    async def extract(self, messages) -> ExtractionResult:
        texts = _cleaned_texts(recent_messages(messages, self.recent_limit), ("user",))
        if not texts:
            return ExtractionResult(provenance=self.provenance)
        try:
            raw_facts = await self.backend.extract_facts("\n\n".join(texts))
        except Exception as e:
            logger.warning("LLM fact extraction failed: %s", e)
            return ExtractionResult(provenance=self.provenance, error=e)
        facts = [normalize(f) for f in raw_facts if isinstance(f, str) and f.strip()]
        return ExtractionResult(facts=dedupe_batch(f for f in facts if f), provenance=self.provenance)
