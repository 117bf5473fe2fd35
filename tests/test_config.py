"""Tests for settings resolution."""
from pathlib import Path

from pinecone_memory.config import Settings, load_settings, resolve_env_vars, settings_from_env


def test_defaults(tmp_home):
    s = Settings(home=tmp_home)
    assert s.index_name == "agent-memory"
    assert s.namespace == "default"
    assert s.auto_recall is True
    assert s.auto_capture is True
    assert s.capture_mode == "heuristic"
    assert s.heuristic_granularity == "message"
    assert s.top_k == 5
    assert s.relevance_threshold == 0.3
    assert s.dedup_threshold == 0.95
    assert s.update_threshold == 0.72
    assert s.delete_threshold == 0.45


def test_home_paths(tmp_home):
    s = Settings(home=tmp_home)
    assert s.hook_socket == tmp_home / "hook.sock"
    assert s.hook_log == tmp_home / "hooks.log"


def test_asdict_masks_secrets(tmp_home):
    s = Settings(pinecone_api_key="pc-abcdef123", openai_api_key=None, home=tmp_home)
    d = s.asdict()
    assert d["pinecone_api_key"] == "pc-a..."
    assert d["openai_api_key"] is None
    assert d["home"] == str(tmp_home)


# ============================================================================
# ${VAR} substitution
# ============================================================================

def test_resolve_env_vars(monkeypatch):
    monkeypatch.setenv("PC_KEY", "secret-value")
    monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
    assert resolve_env_vars("${PC_KEY}") == "secret-value"
    assert resolve_env_vars("prefix-${PC_KEY}-suffix") == "prefix-secret-value-suffix"
    assert resolve_env_vars("${NOT_SET_ANYWHERE}") == ""
    assert resolve_env_vars(7) == 7


# ============================================================================
# Environment
# ============================================================================

def test_settings_from_env():
    s = settings_from_env({
        "PINECONE_API_KEY": "pc-env",
        "PINECONE_MEMORY_INDEX": "my-index",
        "PINECONE_MEMORY_TOP_K": "8",
        "PINECONE_MEMORY_AUTO_RECALL": "false",
        "PINECONE_MEMORY_THRESHOLD": "0.5",
    })
    assert s.pinecone_api_key == "pc-env"
    assert s.index_name == "my-index"
    assert s.top_k == 8
    assert s.auto_recall is False
    assert s.relevance_threshold == 0.5


def test_settings_from_env_ignores_empty_and_invalid():
    s = settings_from_env({"PINECONE_MEMORY_INDEX": "", "PINECONE_MEMORY_TOP_K": "lots"})
    assert s.index_name == "agent-memory"
    assert s.top_k == 5


def test_settings_from_env_home():
    s = settings_from_env({"PINECONE_MEMORY_HOME": "/tmp/pm-home"})
    assert s.home == Path("/tmp/pm-home")


# ============================================================================
# Host plugin config
# ============================================================================

def test_load_settings_camel_case_overrides(monkeypatch):
    monkeypatch.setenv("PC_FROM_ENV", "pc-resolved")
    s = load_settings(
        {
            "pineconeApiKey": "${PC_FROM_ENV}",
            "indexName": "team-memory",
            "topK": 3,
            "similarityThreshold": 0.4,
            "captureMode": "LLM",
            "heuristicGranularity": "sentence",
            "autoCapture": "no",
        },
        dotenv=False,
    )
    assert s.pinecone_api_key == "pc-resolved"
    assert s.index_name == "team-memory"
    assert s.top_k == 3
    assert s.relevance_threshold == 0.4
    assert s.capture_mode == "llm"
    assert s.heuristic_granularity == "sentence"
    assert s.auto_capture is False


def test_load_settings_invalid_values_keep_defaults(monkeypatch):
    monkeypatch.delenv("PINECONE_MEMORY_TOP_K", raising=False)
    monkeypatch.delenv("PINECONE_MEMORY_CAPTURE_MODE", raising=False)
    monkeypatch.delenv("PINECONE_MEMORY_GRANULARITY", raising=False)
    s = load_settings(
        {"topK": "many", "captureMode": "telepathy", "heuristicGranularity": "paragraph", "unknownKey": 1},
        dotenv=False,
    )
    assert s.top_k == 5
    assert s.capture_mode == "heuristic"
    assert s.heuristic_granularity == "message"
    assert not hasattr(s, "unknownKey")


def test_snake_case_keys_accepted(monkeypatch):
    monkeypatch.delenv("PINECONE_MEMORY_NAMESPACE", raising=False)
    s = load_settings({"namespace": "agents"}, dotenv=False)
    assert s.namespace == "agents"
