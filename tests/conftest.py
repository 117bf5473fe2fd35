"""pinecone-memory test configuration."""
import sys
from pathlib import Path

import pytest

# Ensure pinecone_memory package and hooks are importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent / "hooks"))

from pinecone_memory.config import Settings  # noqa: E402
from pinecone_memory.heuristics import similarity  # noqa: E402
from pinecone_memory.store import SearchHit  # noqa: E402


class FakeStore:
    """In-memory stand-in for PineconeMemoryStore.

    ``search`` returns ``hits`` verbatim when they are set (canned ranking),
    otherwise ranks stored records by lexical similarity to the query.
    ``fail_on`` names operations that raise.
    """

    def __init__(self, hits=None, dedup_threshold=0.95):
        self.records = {}
        self.hits = hits
        self.dedup_threshold = dedup_threshold
        self.calls = []
        self.fail_on = set()

    def _maybe_fail(self, op):
        if op in self.fail_on:
            raise RuntimeError(f"{op} exploded")

    async def ensure_index(self):
        self.calls.append(("ensure_index",))
        self._maybe_fail("ensure_index")

    async def store(self, memory_id, text, metadata=None):
        self.calls.append(("store", memory_id, text, dict(metadata or {})))
        self._maybe_fail("store")
        self.records[memory_id] = {"text": text, "metadata": dict(metadata or {})}

    async def update(self, memory_id, text, metadata=None):
        self.calls.append(("update", memory_id, text, dict(metadata or {})))
        self._maybe_fail("update")
        self.records[memory_id] = {"text": text, "metadata": dict(metadata or {})}

    async def delete(self, memory_id):
        self.calls.append(("delete", memory_id))
        self._maybe_fail("delete")
        self.records.pop(memory_id, None)

    async def search(self, query, top_k=5, threshold=0.3):
        self.calls.append(("search", query, top_k, threshold))
        self._maybe_fail("search")
        if self.hits is not None:
            ranked = list(self.hits)
        else:
            ranked = sorted(
                (
                    SearchHit(id=mid, score=similarity(query, rec["text"]), text=rec["text"], metadata=rec["metadata"])
                    for mid, rec in self.records.items()
                ),
                key=lambda h: h.score,
                reverse=True,
            )
        return [h for h in ranked if h.score >= threshold][:top_k]

    async def find_duplicate(self, text):
        hits = await self.search(text, 1, self.dedup_threshold)
        return hits[0] if hits else None

    def ops(self, name):
        """Recorded calls of one operation."""
        return [c for c in self.calls if c[0] == name]


class FakeBackend:
    """Scripted LLM backend. Set ``extract_error`` / ``reconcile_error`` to simulate failures."""

    def __init__(self, facts=None, decisions=None, extract_error=None, reconcile_error=None):
        self.facts = list(facts or [])
        self.decisions = list(decisions or [])
        self.extract_error = extract_error
        self.reconcile_error = reconcile_error
        self.extract_calls = []
        self.reconcile_calls = []

    async def extract_facts(self, conversation_text):
        self.extract_calls.append(conversation_text)
        if self.extract_error:
            raise self.extract_error
        return list(self.facts)

    async def reconcile(self, prompt_block):
        self.reconcile_calls.append(prompt_block)
        if self.reconcile_error:
            raise self.reconcile_error
        return list(self.decisions)


@pytest.fixture
def tmp_home(tmp_path):
    """Temporary pinecone-memory home directory."""
    home = tmp_path / ".pinecone-memory"
    home.mkdir()
    return home


@pytest.fixture
def settings(tmp_home):
    """Default settings rooted in a temp home (no environment lookups)."""
    return Settings(pinecone_api_key="pc-test-key", home=tmp_home)


@pytest.fixture
def llm_settings(tmp_home):
    return Settings(pinecone_api_key="pc-test-key", openai_api_key="sk-test", capture_mode="llm", home=tmp_home)


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def make_store():
    """Factory: ``make_store(hits=[...])`` for canned search rankings."""
    return FakeStore


@pytest.fixture
def make_backend():
    return FakeBackend


@pytest.fixture
def bridge(fake_store, settings):
    from pinecone_memory.bridge import MemoryBridge

    return MemoryBridge(fake_store, settings)
