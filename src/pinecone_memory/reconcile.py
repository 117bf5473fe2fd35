"""Memory reconciliation: decide ADD / UPDATE / DELETE / NONE for new facts.

Two reconcilers share the :class:`Decision` output type:

* :class:`HeuristicReconciler` applies fixed thresholds to the nearby hits of
  one fact, in strict priority order (duplicate, contradiction, update, add).
* :class:`LLMReconciler` hands a whole batch to the LLM backend with every
  real memory id replaced by a short placeholder, then maps the answer back.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from pinecone_memory.heuristics import is_contradiction, similarity
from pinecone_memory.prompts import NO_EXISTING_MEMORIES
from pinecone_memory.text import normalize
from pinecone_memory.types import NEW_ID, Action

logger = logging.getLogger("pinecone_memory.reconcile")


@dataclass
class Decision:
    """One reconciliation outcome for one fact."""

    target_id: str
    text: str
    action: str
    superseded_text: Optional[str] = None


# ---------------------------------------------------------------------------
# Heuristic
# ---------------------------------------------------------------------------


class HeuristicReconciler:
    """Threshold-based reconciliation against a fact's nearby hits."""

    def __init__(self, store, settings) -> None:
        self.store = store
        self.top_k = settings.top_k
        self.relevance_threshold = settings.relevance_threshold
        self.dedup_threshold = settings.dedup_threshold
        self.update_threshold = settings.update_threshold
        self.delete_threshold = settings.delete_threshold

    def _is_duplicate(self, fact: str, hit) -> bool:
        return hit.score >= self.dedup_threshold or similarity(fact, hit.text) >= self.dedup_threshold

    def _contradicts(self, fact: str, hit) -> bool:
        return hit.score >= self.delete_threshold and is_contradiction(fact, hit.text)

    def _is_update(self, fact: str, hit) -> bool:
        return hit.score >= self.update_threshold or similarity(fact, hit.text) >= self.update_threshold

    def decide(self, fact: str, hits: Sequence) -> Decision:
        """Pick the action for ``fact`` given hits in the store's ranking order."""
        nearby = [h for h in hits if h.score >= self.relevance_threshold]

        for hit in nearby:
            if self._is_duplicate(fact, hit):
                return Decision(hit.id, fact, Action.NONE)
        for hit in nearby:
            if self._contradicts(fact, hit):
                return Decision(hit.id, fact, Action.DELETE, superseded_text=hit.text)
        for hit in nearby:
            if self._is_update(fact, hit):
                return Decision(hit.id, fact, Action.UPDATE, superseded_text=hit.text)
        return Decision(NEW_ID, fact, Action.ADD)

    async def reconcile(self, fact: str) -> Decision:
        hits = await self.store.search(fact, self.top_k, self.relevance_threshold)
        decision = self.decide(fact, hits)
        logger.debug("%s -> %s (%s)", fact[:60], decision.action, decision.target_id)
        return decision


# ---------------------------------------------------------------------------
# LLM
# ---------------------------------------------------------------------------


class IdMap:
    """Bidirectional real-id <-> placeholder table for one reconciliation batch.

    Placeholders are assigned lazily as "0", "1", ... in first-seen order; the
    same real id always gets the same placeholder.
    """

    def __init__(self) -> None:
        self._to_placeholder: Dict[str, str] = {}
        self._to_real: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._to_placeholder)

    def placeholder(self, real_id: str) -> str:
        if real_id not in self._to_placeholder:
            key = str(len(self._to_placeholder))
            self._to_placeholder[real_id] = key
            self._to_real[key] = real_id
        return self._to_placeholder[real_id]

    def to_real(self, placeholder) -> str:
        """Map a placeholder back. ``"new"`` and unknown ids pass through."""
        key = str(placeholder).strip() if placeholder is not None else ""
        if key == NEW_ID:
            return NEW_ID
        return self._to_real.get(key, key)


def _optional_text(value) -> Optional[str]:
    return value if isinstance(value, str) and value else None


class LLMReconciler:
    """Batch reconciliation delegated to the LLM backend."""

    def __init__(self, store, backend, settings) -> None:
        self.store = store
        self.backend = backend
        self.top_k = settings.top_k
        self.relevance_threshold = settings.relevance_threshold

    def build_prompt(self, facts: Sequence[str], nearby: Sequence[Sequence], id_map: IdMap) -> str:
        blocks = []
        for n, (fact, hits) in enumerate(zip(facts, nearby), start=1):
            lines = [f"Fact {n}: {fact}"]
            if hits:
                for hit in hits:
                    lines.append(f"- id={id_map.placeholder(hit.id)}: {hit.text} (score {hit.score:.2f})")
            else:
                lines.append(NO_EXISTING_MEMORIES)
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)

    def _decision(self, raw: dict, id_map: IdMap) -> Decision:
        return Decision(
            target_id=id_map.to_real(raw.get("id")),
            text=normalize(raw.get("text")) if isinstance(raw.get("text"), str) else "",
            action=Action.parse(raw.get("event")),
            superseded_text=_optional_text(raw.get("old_memory")),
        )

    async def reconcile(self, facts: Sequence[str]) -> List[Decision]:
        """Decisions for ``facts``. Backend failures propagate to the caller."""
        if not facts:
            return []
        id_map = IdMap()
        nearby = []
        for fact in facts:
            nearby.append(await self.store.search(fact, self.top_k, self.relevance_threshold))
        prompt = self.build_prompt(facts, nearby, id_map)
        raw_decisions = await self.backend.reconcile(prompt)
        decisions = [self._decision(raw, id_map) for raw in raw_decisions]
        logger.debug("LLM reconciled %d facts into %d decisions (%d ids mapped)", len(facts), len(decisions), len(id_map))
        return decisions
