"""
Pinecone Memory MCP Handlers -- Maps tool names to async handler functions.

Each handler delegates to a :class:`~pinecone_memory.bridge.MemoryBridge` for
the actual operation and returns an MCP-compatible response dict. Handlers
never raise: every failure becomes an ``isError`` response.
"""

import functools
import logging
from typing import Any, Dict

logger = logging.getLogger("pinecone_memory.server.handlers")


def _clamp_int(value, default: int, min_val: int = 1, max_val: int = 100) -> int:
    """Clamp a numeric argument to safe bounds."""
    try:
        v = int(value)
        return max(min_val, min(v, max_val))
    except (TypeError, ValueError):
        return default


def _str_arg(arguments: dict, *names: str) -> str:
    """First non-empty string among ``names`` (aliases), stripped."""
    for name in names:
        value = arguments.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


# ============================================================================
# Response Helpers
# ============================================================================


def mcp_response(text: str) -> dict:
    """Build a successful MCP response."""
    return {"content": [{"type": "text", "text": str(text)}]}


def mcp_error(text: str) -> dict:
    """Build an error MCP response."""
    return {"content": [{"type": "text", "text": f"Error: {text}"}], "isError": True}


# ============================================================================
# Handler: memory_store
# ============================================================================


async def handle_memory_store(bridge, arguments: dict) -> dict:
    """Store a memory, skipping near-duplicates. Category is auto-detected if omitted."""
    text = _str_arg(arguments, "text", "content")
    if not text:
        return mcp_error("text is required")
    try:
        return mcp_response(await bridge.memory_store(text, arguments.get("category")))
    except Exception as e:
        logger.error("memory_store failed: %s", e)
        return mcp_error(f"Failed to store memory: {e}")


# ============================================================================
# Handler: memory_search
# ============================================================================


async def handle_memory_search(bridge, arguments: dict) -> dict:
    query = _str_arg(arguments, "query")
    if not query:
        return mcp_error("query is required")
    limit = _clamp_int(arguments.get("limit"), default=bridge.settings.top_k)
    try:
        return mcp_response(await bridge.memory_search(query, limit))
    except Exception as e:
        logger.error("memory_search failed: %s", e)
        return mcp_error(f"Search failed: {e}")


# ============================================================================
# Handler: memory_forget
# ============================================================================


async def handle_memory_forget(bridge, arguments: dict) -> dict:
    """Delete by id, or by query when a single match is unambiguous.

    Accepts 'memoryId' as alias for 'memory_id'.
    """
    memory_id = _str_arg(arguments, "memory_id", "memoryId")
    query = _str_arg(arguments, "query")
    if memory_id and query:
        return mcp_error("provide either memory_id or query, not both")
    if not memory_id and not query:
        return mcp_error("provide either memory_id or query")
    try:
        return mcp_response(await bridge.memory_forget(memory_id=memory_id or None, query=query or None))
    except Exception as e:
        logger.error("memory_forget failed: %s", e)
        return mcp_error(f"Forget failed: {e}")


# ============================================================================
# Handler Registry
# ============================================================================

_HANDLER_FUNCS = {
    "memory_store": handle_memory_store,
    "memory_search": handle_memory_search,
    "memory_forget": handle_memory_forget,
}


def build_handlers(bridge) -> Dict[str, Any]:
    """Bind every tool handler to ``bridge``: ``{name: async fn(arguments)}``."""
    return {name: functools.partial(fn, bridge) for name, fn in _HANDLER_FUNCS.items()}
