"""Tests for the decision applier."""
import logging

import pytest

from pinecone_memory.applier import ApplyStats, DecisionApplier, build_metadata
from pinecone_memory.reconcile import Decision


@pytest.fixture
def applier(fake_store):
    return DecisionApplier(fake_store)


# ============================================================================
# Per-action behavior
# ============================================================================

@pytest.mark.asyncio
async def test_add_stores_with_fresh_id(applier, fake_store):
    stats = await applier.apply([Decision("new", "I always prefer using TypeScript", "ADD")], "llm-extract")
    assert stats.to_dict() == {"added": 1, "updated": 0, "deleted": 0, "none": 0, "failed": 0}
    (_, memory_id, text, meta), = fake_store.ops("store")
    assert memory_id != "new" and len(memory_id) == 36
    assert text == "I always prefer using TypeScript"
    assert meta["category"] == "preference"
    assert meta["provenance"] == "llm-extract"
    assert meta["captured_at"].endswith("+00:00")
    assert "updated_at" not in meta


@pytest.mark.asyncio
async def test_update_overwrites_same_id(applier, fake_store):
    stats = await applier.apply([Decision("m1", "We decided to go with Postgres 16", "UPDATE", "Postgres")], "heuristic-summary")
    assert stats.updated == 1
    (_, memory_id, text, meta), = fake_store.ops("update")
    assert memory_id == "m1"
    assert text == "We decided to go with Postgres 16"
    assert meta["category"] == "decision"
    assert "updated_at" in meta and "captured_at" in meta


@pytest.mark.asyncio
async def test_delete_then_replacement(applier, fake_store):
    stats = await applier.apply([Decision("m1", "I dislike dark mode now", "DELETE", "I like dark mode")], "heuristic-turn-capture")
    assert stats.deleted == 1
    assert stats.added == 1
    assert fake_store.calls[0] == ("delete", "m1")
    (_, new_id, text, meta), = fake_store.ops("store")
    assert new_id != "m1"
    assert text == "I dislike dark mode now"
    assert meta["supersedes"] == "m1"


@pytest.mark.asyncio
async def test_delete_without_text_only_deletes(applier, fake_store):
    stats = await applier.apply([Decision("m1", "", "DELETE")], "llm-extract")
    assert stats.deleted == 1
    assert stats.added == 0
    assert fake_store.ops("store") == []


@pytest.mark.asyncio
async def test_none_counts_only(applier, fake_store):
    stats = await applier.apply([Decision("m1", "same thing", "NONE")], "llm-extract")
    assert stats.none == 1
    assert fake_store.calls == []


# ============================================================================
# No-op guards
# ============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "decision",
    [
        Decision("new", "", "ADD"),
        Decision("m1", "", "UPDATE"),
        Decision("new", "I prefer tabs over spaces", "UPDATE"),
        Decision("new", "I prefer tabs over spaces", "DELETE"),
        Decision("", "I prefer tabs over spaces", "DELETE"),
        Decision("new", "   ", "ADD"),
        Decision("m1", " \n\t ", "UPDATE"),
        Decision("new", "I prefer vim " * 200, "ADD"),
        Decision("m1", "I prefer vim " * 200, "UPDATE"),
    ],
)
async def test_noop_decisions(applier, fake_store, decision):
    stats = await applier.apply([decision], "llm-extract")
    assert stats == ApplyStats()
    assert fake_store.calls == []


@pytest.mark.asyncio
async def test_delete_with_blank_replacement_only_deletes(applier, fake_store):
    stats = await applier.apply([Decision("m1", "   ", "DELETE")], "llm-extract")
    assert stats.deleted == 1
    assert stats.added == 0
    assert fake_store.ops("store") == []


@pytest.mark.asyncio
async def test_text_normalized_before_storing(applier, fake_store):
    await applier.apply([Decision("new", "  - I prefer   tabs over spaces\n", "ADD")], "llm-extract")
    (_, _, text, meta), = fake_store.ops("store")
    assert text == "I prefer tabs over spaces"
    assert meta["category"] == "preference"


@pytest.mark.asyncio
async def test_text_at_length_cap_is_stored(applier, fake_store):
    text = "I prefer vim " + "x" * 1987
    assert len(text) == 2000
    stats = await applier.apply([Decision("new", text, "ADD")], "llm-extract")
    assert stats.added == 1


@pytest.mark.asyncio
async def test_unknown_action_logged_and_skipped(applier, fake_store, caplog):
    with caplog.at_level(logging.WARNING, logger="pinecone_memory.applier"):
        stats = await applier.apply([Decision("m1", "text", "MERGE")], "llm-extract")
    assert stats == ApplyStats()
    assert fake_store.calls == []
    assert "unknown decision event" in caplog.text


# ============================================================================
# Partial failure isolation
# ============================================================================

@pytest.mark.asyncio
async def test_failure_does_not_stop_siblings(applier, fake_store, caplog):
    fake_store.fail_on = {"update"}
    decisions = [
        Decision("m1", "We decided to go with Postgres 16", "UPDATE"),
        Decision("new", "I always prefer using TypeScript", "ADD"),
    ]
    with caplog.at_level(logging.WARNING, logger="pinecone_memory.applier"):
        stats = await applier.apply(decisions, "llm-extract")
    assert stats.failed == 1
    assert stats.added == 1
    assert stats.updated == 0
    assert "failed to apply UPDATE" in caplog.text


@pytest.mark.asyncio
async def test_failed_add_logged(applier, fake_store, caplog):
    fake_store.fail_on = {"store"}
    with caplog.at_level(logging.WARNING, logger="pinecone_memory.applier"):
        stats = await applier.apply([Decision("new", "I prefer tabs over spaces", "ADD")], "llm-extract")
    assert stats.failed == 1
    assert "failed to apply ADD" in caplog.text


# ============================================================================
# Helpers
# ============================================================================

def test_build_metadata_explicit_category():
    meta = build_metadata("anything at all", "tool-invocation", "project")
    assert meta["category"] == "project"
    assert meta["provenance"] == "tool-invocation"


def test_build_metadata_drops_none_extras():
    meta = build_metadata("I prefer vim", "tool-invocation", supersedes=None)
    assert "supersedes" not in meta


def test_stats_merge():
    total = ApplyStats(added=1).merge(ApplyStats(added=2, none=1))
    assert total.to_dict() == {"added": 3, "updated": 0, "deleted": 0, "none": 1, "failed": 0}
