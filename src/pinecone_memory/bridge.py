"""
Memory Bridge -- High-level API for the Pinecone memory layer.

Provides the public interface used by the MCP handlers, the hook server and
the CLI. One :class:`MemoryBridge` owns one store (and optionally one LLM
backend); nothing here is a module-level singleton.

Public API:
    Turn hooks: recall, capture
    Tools:      memory_store, memory_search, memory_forget
    Status:     stats

``recall`` and ``capture`` never raise: memory is an enhancement, so any
failure is logged and degrades to "nothing recalled" / "nothing captured".
The tool operations raise; their callers turn errors into responses.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from pinecone_memory.applier import ApplyStats, DecisionApplier, build_metadata, new_memory_id
from pinecone_memory.config import Settings, load_settings
from pinecone_memory.exceptions import BackendCallFailure, ConfigurationError
from pinecone_memory.extraction import ExtractionResult, HeuristicExtractor, LLMExtractor
from pinecone_memory.heuristics import MAX_CAPTURE_LENGTH, detect_category
from pinecone_memory.recall import assemble_context, usable_hits
from pinecone_memory.reconcile import HeuristicReconciler, LLMReconciler
from pinecone_memory.store import PineconeMemoryStore
from pinecone_memory.types import MemoryCategory, Provenance

logger = logging.getLogger("pinecone_memory.bridge")

FORGET_SEARCH_LIMIT = 5
FORGET_PREVIEW_CHARS = 100


def _plural(n: int) -> str:
    return "memory" if n == 1 else "memories"


class MemoryBridge:
    """Recall, capture and tool operations over one store namespace."""

    def __init__(self, store, settings: Settings, backend=None) -> None:
        self.store = store
        self.settings = settings
        self.backend = backend
        self.extractor = HeuristicExtractor.from_settings(settings)
        # Used when the LLM path fails: whole-message turn capture
        self.fallback_extractor = HeuristicExtractor.from_settings(settings, granularity="message")
        self.reconciler = HeuristicReconciler(store, settings)
        self.applier = DecisionApplier(store)
        self.llm_extractor = None
        self.llm_reconciler = None
        if backend is not None:
            self.llm_extractor = LLMExtractor(backend, settings.recent_message_limit)
            self.llm_reconciler = LLMReconciler(store, backend, settings)

    @property
    def llm_enabled(self) -> bool:
        return self.backend is not None and self.settings.capture_mode == "llm"

    # ------------------------------------------------------------------
    # Recall
    # ------------------------------------------------------------------
    async def recall(self, prompt: Optional[str]) -> Optional[str]:
        """Context block of memories relevant to ``prompt``, or None."""
        try:
            text = (prompt or "").strip()
            if len(text) < self.settings.min_prompt_length:
                return None
            hits = await self.store.search(text, self.settings.top_k, self.settings.relevance_threshold)
            kept = usable_hits(hits, self.settings.relevance_threshold)
            block = assemble_context(kept, self.settings.relevance_threshold)
            if block:
                logger.info("recalled %d %s", len(kept), _plural(len(kept)))
            return block
        except Exception as e:
            logger.warning("recall failed: %s", e)
            return None

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------
    async def capture(self, messages: Optional[List[Dict[str, Any]]]) -> ApplyStats:
        """Extract facts from a finished turn and reconcile them into the store."""
        try:
            stats = await self._capture(messages or [])
        except Exception as e:
            logger.warning("capture failed: %s", e)
            return ApplyStats()
        if stats.added or stats.updated or stats.deleted:
            logger.info(
                "captured: %d added, %d updated, %d deleted, %d unchanged",
                stats.added,
                stats.updated,
                stats.deleted,
                stats.none,
            )
        return stats

    async def _capture(self, messages: List[Dict[str, Any]]) -> ApplyStats:
        if not self.llm_enabled:
            result = await self.extractor.extract(messages)
            return await self._reconcile_each(result)

        result = await self.llm_extractor.extract(messages)
        if result.ok:
            return await self._reconcile_batch(result)
        logger.warning("falling back to heuristic capture: %s", result.error)
        return await self._reconcile_each(await self.fallback_extractor.extract(messages))

    async def _reconcile_each(self, result: ExtractionResult) -> ApplyStats:
        """Reconcile and apply one fact at a time; later facts see earlier writes."""
        stats = ApplyStats()
        for fact in result.facts:
            decision = await self.reconciler.reconcile(fact)
            stats.merge(await self.applier.apply([decision], result.provenance))
        return stats

    async def _reconcile_batch(self, result: ExtractionResult) -> ApplyStats:
        if not result.facts:
            return ApplyStats()
        try:
            decisions = await self.llm_reconciler.reconcile(result.facts)
        except BackendCallFailure as e:
            logger.warning("LLM reconciliation failed, using heuristic rules: %s", e)
            return await self._reconcile_each(result)
        return await self.applier.apply(decisions, result.provenance)

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------
    async def memory_store(self, text: str, category: Optional[str] = None) -> str:
        """Store ``text`` unless a near-identical memory already exists."""
        text = (text or "").strip()
        if not text:
            raise ValueError("text is required")
        if len(text) > MAX_CAPTURE_LENGTH:
            raise ValueError(f"text is {len(text)} characters; the limit is {MAX_CAPTURE_LENGTH}")
        dup = await self.store.find_duplicate(text)
        if dup is not None:
            return (
                f"Duplicate detected: a very similar memory already exists "
                f"(score: {dup.score:.2f}, id: {dup.id}). Not stored."
            )
        if category not in MemoryCategory.ALL:
            category = detect_category(text)
        memory_id = new_memory_id()
        await self.store.store(memory_id, text, build_metadata(text, Provenance.TOOL, category))
        return f"Memory stored (id: {memory_id}, category: {category})."

    async def search(self, query: str, limit: Optional[int] = None) -> list:
        query = (query or "").strip()
        if not query:
            raise ValueError("query is required")
        return await self.store.search(query, limit or self.settings.top_k, self.settings.relevance_threshold)

    async def memory_search(self, query: str, limit: Optional[int] = None) -> str:
        """JSON list of matching memories, best first."""
        hits = await self.search(query, limit)
        if not hits:
            return "No matching memories found."
        results = [
            {
                "id": hit.id,
                "score": round(hit.score, 2),
                "category": hit.category or "unknown",
                "content": hit.text,
                "captured_at": hit.metadata.get("captured_at"),
            }
            for hit in hits
        ]
        return json.dumps(results, indent=2)

    async def memory_forget(self, memory_id: Optional[str] = None, query: Optional[str] = None) -> str:
        """Delete by id, or by query when the match is unambiguous."""
        memory_id = (memory_id or "").strip()
        query = (query or "").strip()
        if memory_id and query:
            raise ValueError("Provide either memory_id or query, not both.")
        if memory_id:
            await self.store.delete(memory_id)
            return f"Memory {memory_id} deleted."
        if not query:
            raise ValueError("Provide either memory_id or query.")

        hits = await self.store.search(query, FORGET_SEARCH_LIMIT, self.settings.relevance_threshold)
        if not hits:
            return "No matching memories found to delete."
        top = hits[0]
        if len(hits) == 1 or top.score >= self.settings.forget_threshold:
            await self.store.delete(top.id)
            return f'Deleted memory (id: {top.id}, score: {top.score:.2f}): "{top.text[:FORGET_PREVIEW_CHARS]}"'

        candidates = [
            {"id": h.id, "score": round(h.score, 2), "content": h.text[:FORGET_PREVIEW_CHARS]} for h in hits
        ]
        return "Multiple matches found. Specify a memory_id to delete:\n" + json.dumps(candidates, indent=2)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    async def stats(self) -> Dict[str, Any]:
        """Resolve the index and report the active configuration."""
        await self.store.ensure_index()
        s = self.settings
        return {
            "index": s.index_name,
            "namespace": s.namespace,
            "auto_recall": s.auto_recall,
            "auto_capture": s.auto_capture,
            "capture_mode": "llm" if self.llm_enabled else "heuristic",
            "heuristic_granularity": s.heuristic_granularity,
            "top_k": s.top_k,
            "relevance_threshold": s.relevance_threshold,
            "dedup_threshold": s.dedup_threshold,
            "update_threshold": s.update_threshold,
            "delete_threshold": s.delete_threshold,
        }


def create_bridge(settings: Optional[Settings] = None, *, client=None, backend=None) -> MemoryBridge:
    """Build a bridge from settings.

    A missing Pinecone key raises :class:`ConfigurationError`. A missing OpenAI
    key in llm capture mode only downgrades capture to the heuristic path.
    """
    settings = settings or load_settings()
    store = PineconeMemoryStore(settings, client=client)
    if backend is None and settings.capture_mode == "llm":
        from pinecone_memory.llm import OpenAIBackend

        try:
            backend = OpenAIBackend.from_settings(settings)
        except ConfigurationError as e:
            logger.warning("%s; using heuristic capture", e)
    logger.info(
        "registered (index: %s, ns: %s, autoRecall: %s, autoCapture: %s)",
        settings.index_name,
        settings.namespace,
        settings.auto_recall,
        settings.auto_capture,
    )
    return MemoryBridge(store, settings, backend)
