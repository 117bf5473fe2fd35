"""Pinecone Memory Hook Server -- Unix Domain Socket daemon for fast hook dispatch.

Runs inside the MCP server process, reusing the warm bridge (and its resolved
Pinecone index). The host connects via ~/.pinecone-memory/hook.sock, sends a
JSON request, and gets a JSON response:

    {"hook": "before_agent_start", "prompt": "..."}  -> {"prepend_context": "..."} or {}
    {"hook": "agent_end", "messages": [...]}         -> {"captured": {"added": 1, ...}}
    {"hooks": ["a", "b"], ...}                        -> {"results": [..., ...]}
"""

import asyncio
import functools
import json
import logging
import os
import time
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger("pinecone_memory.hook_server")

_MAX_LOG_BYTES = 5 * 1024 * 1024  # 5 MB cap
_READ_TIMEOUT_S = 10.0


# ---------------------------------------------------------------------------
# hooks.log
# ---------------------------------------------------------------------------


def _rotate_log_if_needed(log_path: Path):
    """Rotate hooks.log to hooks.log.1 once it passes the size cap."""
    try:
        if log_path.exists() and log_path.stat().st_size > _MAX_LOG_BYTES:
            rotated = log_path.with_suffix(".log.1")
            if rotated.exists():
                rotated.unlink()
            log_path.rename(rotated)
    except OSError:
        pass


def _secure_append(log_path: Path, data: str):
    """Append to a file with secure permissions (0o600)."""
    log_path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    _rotate_log_if_needed(log_path)
    fd = os.open(str(log_path), os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
    try:
        os.write(fd, data.encode("utf-8"))
    finally:
        os.close(fd)


def _log_hook_error(log_path: Optional[Path], hook_name: str, error: Exception):
    """Log hook errors to hooks.log."""
    if log_path is None:
        return
    try:
        timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        tb = traceback.format_exc()
        _secure_append(log_path, f"[{timestamp}] hook_server/{hook_name}: {error}\n{tb}\n")
    except Exception:
        logger.debug("could not write hook error log", exc_info=True)


def _log_timing(log_path: Optional[Path], hook_name: str, elapsed_ms: float):
    """Log hook timing to hooks.log."""
    if log_path is None:
        return
    try:
        timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        _secure_append(log_path, f"[{timestamp}] hook_server/{hook_name}: OK ({elapsed_ms:.0f}ms)\n")
    except Exception:
        logger.debug("could not write hook timing log", exc_info=True)


# ---------------------------------------------------------------------------
# Hook handlers
# ---------------------------------------------------------------------------


async def handle_before_agent_start(bridge, payload: dict) -> dict:
    """Recall: prepend relevant memories to the agent's context."""
    prompt = payload.get("prompt")
    block = await bridge.recall(prompt if isinstance(prompt, str) else None)
    return {"prepend_context": block} if block else {}


async def handle_agent_end(bridge, payload: dict) -> dict:
    """Capture: reconcile facts from the finished turn into the store."""
    messages = payload.get("messages")
    stats = await bridge.capture(messages if isinstance(messages, list) else [])
    return {"captured": stats.to_dict()}


def build_hook_handlers(bridge) -> Dict[str, Any]:
    """Dispatch table for ``bridge``. Disabled hooks are not registered."""
    handlers: Dict[str, Any] = {}
    if bridge.settings.auto_recall:
        handlers["before_agent_start"] = functools.partial(handle_before_agent_start, bridge)
    if bridge.settings.auto_capture:
        handlers["agent_end"] = functools.partial(handle_agent_end, bridge)
    return handlers


async def dispatch(handlers: Dict[str, Any], request: dict) -> dict:
    """Run one request (single or batch) against ``handlers``."""
    request = dict(request)
    hook_names = request.pop("hooks", None)
    if hook_names:
        results = []
        for name in hook_names:
            handler = handlers.get(name)
            if not handler:
                results.append({"error": f"Unknown hook: {name}"})
            else:
                results.append(await handler(request))
        return {"results": results}

    hook_name = request.pop("hook", "unknown")
    handler = handlers.get(hook_name)
    if not handler:
        return {"error": f"Unknown hook: {hook_name}"}
    return await handler(request)


# ---------------------------------------------------------------------------
# UDS Server
# ---------------------------------------------------------------------------


async def handle_connection(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    handlers: Dict[str, Any],
    log_path: Optional[Path] = None,
):
    """Handle a single hook client connection."""
    t0 = time.monotonic()
    hook_name = "unknown"
    try:
        # Read until EOF; client calls shutdown(SHUT_WR) after sendall()
        chunks = []
        while True:
            chunk = await asyncio.wait_for(reader.read(65536), timeout=_READ_TIMEOUT_S)
            if not chunk:
                break
            chunks.append(chunk)
        data = b"".join(chunks)
        if not data:
            return

        request = json.loads(data.decode("utf-8").strip())
        hook_name = "+".join(request.get("hooks") or []) or request.get("hook", "unknown")
        response = await dispatch(handlers, request)

        writer.write(json.dumps(response).encode("utf-8"))
        await writer.drain()
    except asyncio.TimeoutError:
        try:
            writer.write(json.dumps({"error": "timeout"}).encode("utf-8"))
            await writer.drain()
        except Exception:
            pass
    except Exception as e:
        _log_hook_error(log_path, f"connection/{hook_name}", e)
        try:
            writer.write(json.dumps({"error": str(e)}).encode("utf-8"))
            await writer.drain()
        except Exception:
            pass
    finally:
        elapsed_ms = (time.monotonic() - t0) * 1000
        _log_timing(log_path, hook_name, elapsed_ms)
        try:
            writer.close()
            await writer.wait_closed()
        except Exception:
            pass


async def start_hook_server(bridge) -> Optional[asyncio.AbstractServer]:
    """Start the UDS hook server for ``bridge``. Returns the server instance, or None."""
    sock_path = bridge.settings.hook_socket
    sock_path.parent.mkdir(parents=True, exist_ok=True)

    # Remove stale socket from previous run
    if sock_path.exists():
        sock_path.unlink()

    callback = functools.partial(
        handle_connection,
        handlers=build_hook_handlers(bridge),
        log_path=bridge.settings.hook_log,
    )
    try:
        srv = await asyncio.start_unix_server(callback, path=str(sock_path))
        sock_path.chmod(0o600)
        logger.info("Hook server listening on %s", sock_path)
        return srv
    except Exception as e:
        logger.error("Failed to start hook server: %s", e)
        return None


async def stop_hook_server(srv: Optional[asyncio.AbstractServer], sock_path: Optional[Path] = None):
    """Stop the hook server and clean up the socket.

    Only deletes the socket file if this process owns the server, to avoid
    breaking another process's active socket.
    """
    if srv is None:
        return
    srv.close()
    await srv.wait_closed()
    if sock_path is not None and sock_path.exists():
        try:
            sock_path.unlink()
        except OSError:
            pass
