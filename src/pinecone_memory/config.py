"""Runtime settings loader.

All configuration resolution happens here so the rest of the package consumes
a single :class:`Settings` object. Sources, lowest to highest precedence:

1. dataclass defaults
2. environment (a ``.env`` file is loaded first via python-dotenv)
3. the host's plugin config dict (camelCase keys, ``${VAR}`` references allowed)

Values are coerced to the field's type; anything that fails coercion keeps the
default. There is no schema enforcement beyond that.
"""

import logging
import os
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger("pinecone_memory.config")

CAPTURE_MODES = ("heuristic", "llm")
GRANULARITIES = ("message", "sentence")

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def resolve_env_vars(value):
    """Substitute ``${NAME}`` references with environment values.

    Missing variables become empty strings. Non-strings pass through unchanged.
    """
    if not isinstance(value, str):
        return value
    return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)


def _default_home() -> Path:
    return Path(os.environ.get("PINECONE_MEMORY_HOME", str(Path.home() / ".pinecone-memory")))


# ---------------------------------------------------------------------------
# Settings Dataclass
# ---------------------------------------------------------------------------
@dataclass
class Settings:
    """Resolved runtime configuration."""

    pinecone_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    index_name: str = "agent-memory"
    namespace: str = "default"

    auto_recall: bool = True
    auto_capture: bool = True
    capture_mode: str = "heuristic"          # heuristic | llm
    heuristic_granularity: str = "message"   # message | sentence

    top_k: int = 5
    relevance_threshold: float = 0.3
    dedup_threshold: float = 0.95
    update_threshold: float = 0.72
    delete_threshold: float = 0.45
    forget_threshold: float = 0.9

    min_fact_length: int = 15
    max_fact_length: int = 280
    min_prompt_length: int = 5
    recent_message_limit: int = 10

    llm_model: str = "gpt-4o-mini"
    llm_base_url: Optional[str] = None

    home: Path = field(default_factory=_default_home)

    @property
    def hook_socket(self) -> Path:
        return self.home / "hook.sock"

    @property
    def hook_log(self) -> Path:
        return self.home / "hooks.log"

    def asdict(self) -> Dict[str, Any]:
        """Settings as a dict with secrets masked (for logging and `stats`)."""
        out = asdict(self)
        for key in ("pinecone_api_key", "openai_api_key"):
            if out.get(key):
                out[key] = out[key][:4] + "..."
        out["home"] = str(self.home)
        return out


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

_TRUE = {"1", "true", "t", "yes", "y", "on"}
_FALSE = {"0", "false", "f", "no", "n", "off"}


def _as_bool(raw, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        val = raw.strip().lower()
        if val in _TRUE:
            return True
        if val in _FALSE:
            return False
        return default
    if isinstance(raw, (int, float)):
        return bool(raw)
    return default


def _coerce(name: str, raw, default):
    """Coerce ``raw`` to the type of ``default``; keep ``default`` on failure."""
    if raw is None:
        return default
    try:
        if isinstance(default, bool):
            return _as_bool(raw, default)
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
        if isinstance(default, Path):
            return Path(str(raw)).expanduser()
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid value for %s: %r", name, raw)
        return default
    if raw == "":
        return default
    return str(raw)


# Host plugin config keys (camelCase) -> Settings fields.
_CONFIG_ALIASES = {
    "pineconeApiKey": "pinecone_api_key",
    "openaiApiKey": "openai_api_key",
    "indexName": "index_name",
    "autoRecall": "auto_recall",
    "autoCapture": "auto_capture",
    "captureMode": "capture_mode",
    "heuristicGranularity": "heuristic_granularity",
    "topK": "top_k",
    "similarityThreshold": "relevance_threshold",
    "relevanceThreshold": "relevance_threshold",
    "deduplicationThreshold": "dedup_threshold",
    "dedupThreshold": "dedup_threshold",
    "updateThreshold": "update_threshold",
    "deleteThreshold": "delete_threshold",
    "forgetThreshold": "forget_threshold",
    "minFactLength": "min_fact_length",
    "maxFactLength": "max_fact_length",
    "minPromptLength": "min_prompt_length",
    "recentMessageLimit": "recent_message_limit",
    "llmModel": "llm_model",
    "llmBaseUrl": "llm_base_url",
}

# Environment variable -> Settings field.
_ENV_KEYS = {
    "PINECONE_API_KEY": "pinecone_api_key",
    "OPENAI_API_KEY": "openai_api_key",
    "PINECONE_MEMORY_INDEX": "index_name",
    "PINECONE_MEMORY_NAMESPACE": "namespace",
    "PINECONE_MEMORY_AUTO_RECALL": "auto_recall",
    "PINECONE_MEMORY_AUTO_CAPTURE": "auto_capture",
    "PINECONE_MEMORY_CAPTURE_MODE": "capture_mode",
    "PINECONE_MEMORY_GRANULARITY": "heuristic_granularity",
    "PINECONE_MEMORY_TOP_K": "top_k",
    "PINECONE_MEMORY_THRESHOLD": "relevance_threshold",
    "PINECONE_MEMORY_DEDUP_THRESHOLD": "dedup_threshold",
    "PINECONE_MEMORY_UPDATE_THRESHOLD": "update_threshold",
    "PINECONE_MEMORY_DELETE_THRESHOLD": "delete_threshold",
    "PINECONE_MEMORY_LLM_MODEL": "llm_model",
    "OPENAI_BASE_URL": "llm_base_url",
    "PINECONE_MEMORY_HOME": "home",
}


# ---------------------------------------------------------------------------
# Settings Builders
# ---------------------------------------------------------------------------

def _apply(settings: Settings, values: Dict[str, Any]) -> None:
    known = {f.name for f in fields(Settings)}
    for key, raw in values.items():
        name = _CONFIG_ALIASES.get(key, key)
        if name not in known:
            logger.debug("Ignoring unknown config key %s", key)
            continue
        current = getattr(settings, name)
        setattr(settings, name, _coerce(name, resolve_env_vars(raw), current))


def _normalize_choices(settings: Settings) -> None:
    mode = str(settings.capture_mode).strip().lower()
    if mode not in CAPTURE_MODES:
        logger.warning("Unknown capture mode %r, using heuristic", settings.capture_mode)
        mode = "heuristic"
    settings.capture_mode = mode

    granularity = str(settings.heuristic_granularity).strip().lower()
    if granularity not in GRANULARITIES:
        logger.warning("Unknown heuristic granularity %r, using message", settings.heuristic_granularity)
        granularity = "message"
    settings.heuristic_granularity = granularity


def settings_from_env(environ: Optional[Dict[str, str]] = None) -> Settings:
    """Build settings from defaults + environment variables."""
    env = os.environ if environ is None else environ
    s = Settings()
    _apply(s, {name: env[var] for var, name in _ENV_KEYS.items() if env.get(var)})
    return s


def load_settings(overrides: Optional[Dict[str, Any]] = None, *, dotenv: bool = True) -> Settings:
    """Public loader: env (+ .env) overlaid with the host's plugin config."""
    if dotenv:
        load_dotenv()
    settings = settings_from_env()
    if overrides:
        _apply(settings, overrides)
    _normalize_choices(settings)
    return settings
