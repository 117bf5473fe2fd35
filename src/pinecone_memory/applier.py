"""Apply reconciliation decisions to the store.

Each decision is applied on its own: a store failure is logged and counted,
and the remaining decisions still run.
"""

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from pinecone_memory.heuristics import MAX_CAPTURE_LENGTH, detect_category
from pinecone_memory.text import normalize
from pinecone_memory.types import NEW_ID, Action

logger = logging.getLogger("pinecone_memory.applier")


@dataclass
class ApplyStats:
    added: int = 0
    updated: int = 0
    deleted: int = 0
    none: int = 0
    failed: int = 0

    def merge(self, other: "ApplyStats") -> "ApplyStats":
        for name, value in asdict(other).items():
            setattr(self, name, getattr(self, name) + value)
        return self

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_metadata(text: str, provenance: str, category: Optional[str] = None, **extra) -> Dict[str, Any]:
    """Record fields stored alongside ``content``."""
    meta = {
        "category": category or detect_category(text),
        "provenance": provenance,
        "captured_at": _now_iso(),
    }
    meta.update({k: v for k, v in extra.items() if v is not None})
    return meta


def new_memory_id() -> str:
    return str(uuid.uuid4())


def record_text(text) -> str:
    """Normalized record text, or ``""`` if it is blank or over the record length cap."""
    text = normalize(text) if isinstance(text, str) else ""
    if len(text) > MAX_CAPTURE_LENGTH:
        logger.warning("dropping %d-char fact (limit %d)", len(text), MAX_CAPTURE_LENGTH)
        return ""
    return text


class DecisionApplier:
    """Turns :class:`~pinecone_memory.reconcile.Decision` objects into store calls."""

    def __init__(self, store) -> None:
        self.store = store

    async def _add(self, decision, provenance: str, stats: ApplyStats) -> None:
        text = record_text(decision.text)
        if not text:
            return
        await self.store.store(new_memory_id(), text, build_metadata(text, provenance))
        stats.added += 1

    async def _update(self, decision, provenance: str, stats: ApplyStats) -> None:
        text = record_text(decision.text)
        if not text or not decision.target_id or decision.target_id == NEW_ID:
            return
        meta = build_metadata(text, provenance, updated_at=_now_iso())
        await self.store.update(decision.target_id, text, meta)
        stats.updated += 1

    async def _delete(self, decision, provenance: str, stats: ApplyStats) -> None:
        if not decision.target_id or decision.target_id == NEW_ID:
            return
        await self.store.delete(decision.target_id)
        stats.deleted += 1
        text = record_text(decision.text)
        if text:
            meta = build_metadata(text, provenance, supersedes=decision.target_id)
            await self.store.store(new_memory_id(), text, meta)
            stats.added += 1

    async def apply(self, decisions: Iterable, provenance: str) -> ApplyStats:
        stats = ApplyStats()
        for decision in decisions:
            action = decision.action
            if action == Action.NONE:
                stats.none += 1
                continue
            handler = {
                Action.ADD: self._add,
                Action.UPDATE: self._update,
                Action.DELETE: self._delete,
            }.get(action)
            if handler is None:
                logger.warning("unknown decision event %r for %s", action, decision.target_id)
                continue
            try:
                await handler(decision, provenance, stats)
            except Exception as e:
                stats.failed += 1
                logger.warning("failed to apply %s for %s: %s", action, decision.target_id, e)
        return stats
