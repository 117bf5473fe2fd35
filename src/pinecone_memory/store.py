"""Pinecone store collaborator.

Wraps one namespace of a Pinecone index with integrated inference (the index
embeds the ``content`` field server-side). The synchronous SDK is driven from
worker threads so the event loop never blocks on network I/O.

Index resolution happens once per instance: the first operation starts a
setup task and every operation awaits it. A failed setup is forgotten so the
next call tries again, but nothing is retried within a call.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pinecone import Pinecone

from pinecone_memory.exceptions import CollaboratorUnavailable, ConfigurationError
from pinecone_memory.types import field_value

logger = logging.getLogger("pinecone_memory.store")

CONTENT_FIELD = "content"


# ---------------------------------------------------------------------------
# Hit projection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SearchHit:
    """Read-only projection of one search result."""

    id: str
    score: float
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def category(self) -> Optional[str]:
        return self.metadata.get("category")


def _as_dict(raw) -> Any:
    to_dict = getattr(raw, "to_dict", None)
    if callable(to_dict) and not isinstance(raw, dict):
        try:
            converted = to_dict()
        except Exception:
            return raw
        if isinstance(converted, dict):
            return converted
    return raw


def _top_level_content(hit) -> Any:
    return field_value(hit, CONTENT_FIELD)


def _fields_content(hit) -> Any:
    return field_value(field_value(hit, "fields"), CONTENT_FIELD)


def _metadata_content(hit) -> Any:
    return field_value(field_value(hit, "metadata"), CONTENT_FIELD)


# Tried in order; the first non-empty string wins.
HIT_CONTENT_STRATEGIES: List[Callable[[Any], Any]] = [
    _top_level_content,
    _fields_content,
    _metadata_content,
]


def extract_hit_content(hit) -> str:
    """Find a hit's text wherever the response shape put it, else ``""``."""
    for strategy in HIT_CONTENT_STRATEGIES:
        value = strategy(hit)
        if isinstance(value, str) and value.strip():
            return value
    return ""


def project_hit(raw) -> Optional[SearchHit]:
    """Convert an SDK hit (object or dict) to a :class:`SearchHit`."""
    hit = _as_dict(raw)
    hit_id = field_value(hit, "_id") or field_value(hit, "id")
    score = field_value(hit, "_score")
    if score is None:
        score = field_value(hit, "score")
    if not isinstance(hit_id, str) or not hit_id:
        return None
    try:
        score = float(score)
    except (TypeError, ValueError):
        return None

    metadata = {}
    for source in (field_value(hit, "metadata"), field_value(hit, "fields")):
        if isinstance(source, dict):
            metadata.update(source)
    metadata.pop(CONTENT_FIELD, None)
    return SearchHit(id=hit_id, score=score, text=extract_hit_content(hit), metadata=metadata)


def _response_hits(response) -> list:
    result = field_value(_as_dict(response), "result")
    hits = field_value(result, "hits")
    return list(hits) if isinstance(hits, (list, tuple)) else []


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class PineconeMemoryStore:
    """Memory records in one Pinecone namespace.

    Parameters
    ----------
    settings:
        Provides ``index_name``, ``namespace``, ``dedup_threshold`` and the API key.
    client:
        Injected ``Pinecone`` client (tests pass a mock). Built from settings
        when omitted.
    """

    def __init__(self, settings, client=None) -> None:
        self.index_name = settings.index_name
        self.namespace = settings.namespace
        self.dedup_threshold = settings.dedup_threshold
        if client is None:
            if not settings.pinecone_api_key:
                raise ConfigurationError("PINECONE_API_KEY is required")
            client = Pinecone(api_key=settings.pinecone_api_key)
        self.client = client
        self._index = None
        self._ready: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Index resolution
    # ------------------------------------------------------------------
    def _resolve_index(self):
        if not self.client.has_index(self.index_name):
            raise CollaboratorUnavailable(
                f'Index "{self.index_name}" not found. Create it in the Pinecone console with '
                f"integrated inference and a field map of text -> {CONTENT_FIELD}."
            )
        return self.client.Index(self.index_name)

    async def _connect(self) -> None:
        self._index = await asyncio.to_thread(self._resolve_index)
        logger.info("Connected to index %s (namespace %s)", self.index_name, self.namespace)

    async def ensure_index(self) -> None:
        """Resolve the index once; concurrent callers share the same task."""
        if self._ready is None:
            self._ready = asyncio.ensure_future(self._connect())
        try:
            await self._ready
        except Exception:
            self._ready = None
            raise

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def store(self, memory_id: str, text: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Upsert one record. ``metadata`` keys become record fields."""
        await self.ensure_index()
        record = {"_id": memory_id, CONTENT_FIELD: text, **(metadata or {})}
        await asyncio.to_thread(self._index.upsert_records, self.namespace, [record])

    async def update(self, memory_id: str, text: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Full overwrite of text + metadata under the same id."""
        await self.store(memory_id, text, metadata)

    async def delete(self, memory_id: str) -> None:
        await self.ensure_index()
        await asyncio.to_thread(self._index.delete, ids=[memory_id], namespace=self.namespace)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def search(self, query: str, top_k: int = 5, threshold: float = 0.3) -> List[SearchHit]:
        """Top-K hits for ``query`` with ``score >= threshold``, best first."""
        await self.ensure_index()
        response = await asyncio.to_thread(
            self._index.search,
            namespace=self.namespace,
            query={"inputs": {"text": query}, "top_k": top_k},
        )
        hits = [project_hit(raw) for raw in _response_hits(response)]
        return [h for h in hits if h is not None and h.score >= threshold]

    async def find_duplicate(self, text: str) -> Optional[SearchHit]:
        """Return the nearest hit if it clears the dedup threshold."""
        hits = await self.search(text, 1, self.dedup_threshold)
        return hits[0] if hits else None
