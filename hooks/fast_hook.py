#!/usr/bin/env python3
"""Pinecone memory fast hook client -- routes to daemon via UDS, falls back to in-process.

This is a thin client that connects to the hook server running inside the
MCP process. It avoids importing any pinecone_memory modules on the fast path,
keeping startup to the Python interpreter alone.

The host sends the hook event as JSON on stdin and reads the hook result as
JSON on stdout:

    fast_hook.py before_agent_start  <<< '{"prompt": "..."}'
    fast_hook.py agent_end           <<< '{"messages": [...]}'

If the daemon socket is unavailable (MCP not started yet, or crashed), the
hook runs in-process against a freshly built bridge.
"""
import json
import os
import socket
import sys
import time

HOME_DIR = os.environ.get("PINECONE_MEMORY_HOME") or os.path.expanduser("~/.pinecone-memory")
SOCK_PATH = os.path.join(HOME_DIR, "hook.sock")

# Capture reconciles every fact against the index; give it room
_SLOW_HOOKS = {"agent_end"}


def delegate(hook_names, payload, timeout=5.0, sock_path=None):
    """Connect to daemon, send request, return parsed response.

    Accepts a single hook name (str) or multiple (list) for batching.
    Batch requests use {"hooks": [...]} and return {"results": [...]}.
    """
    s = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    s.settimeout(timeout)
    try:
        s.connect(sock_path or SOCK_PATH)
        if isinstance(hook_names, list):
            request = json.dumps({"hooks": hook_names, **payload}).encode("utf-8")
        else:
            request = json.dumps({"hook": hook_names, **payload}).encode("utf-8")
        s.sendall(request)
        s.shutdown(socket.SHUT_WR)

        response = b""
        while True:
            chunk = s.recv(8192)
            if not chunk:
                break
            response += chunk
        return json.loads(response.decode("utf-8"))
    finally:
        s.close()


def _fallback(hook_names, payload):
    """Run the hooks in-process (cold path): build a bridge and dispatch directly."""
    import asyncio

    from pinecone_memory.bridge import create_bridge
    from pinecone_memory.server.hook_server import build_hook_handlers, dispatch

    bridge = create_bridge()
    handlers = build_hook_handlers(bridge)
    if isinstance(hook_names, list):
        request = {"hooks": hook_names, **payload}
    else:
        request = {"hook": hook_names, **payload}
    return asyncio.run(dispatch(handlers, request))


def _log_timing(hook_name, elapsed_ms, mode):
    """Log hook timing to hooks.log."""
    try:
        from datetime import datetime, timezone

        os.makedirs(HOME_DIR, mode=0o700, exist_ok=True)
        log_path = os.path.join(HOME_DIR, "hooks.log")
        timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        data = f"[{timestamp}] fast_hook/{hook_name}: OK ({elapsed_ms:.0f}ms, {mode})\n"
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        try:
            os.write(fd, data.encode("utf-8"))
        finally:
            os.close(fd)
    except OSError:
        pass


def _parse_payload(stream=None):
    """Read the hook event object from stdin. Anything else yields an empty payload."""
    stream = stream or sys.stdin
    if stream.isatty():
        return {}
    raw = stream.read()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def main():
    if len(sys.argv) < 2:
        print("Usage: fast_hook.py <hook_name[+hook_name...]>", file=sys.stderr)
        sys.exit(1)

    t0 = time.monotonic()
    hook_names = sys.argv[1].split("+")
    target = hook_names if len(hook_names) > 1 else hook_names[0]
    payload = _parse_payload()

    timeout = 5.0
    if _SLOW_HOOKS.intersection(hook_names):
        timeout = 30.0

    try:
        result = delegate(target, payload, timeout=timeout)
        mode = "daemon"
    except (ConnectionRefusedError, FileNotFoundError, socket.timeout, OSError):
        # Daemon not running; run in-process
        try:
            result = _fallback(target, payload)
        except Exception as e:
            print(f"pinecone-memory hook fallback error ({sys.argv[1]}): {e}", file=sys.stderr)
            result = {}
        mode = "fallback"

    print(json.dumps(result))
    _log_timing("+".join(hook_names), (time.monotonic() - t0) * 1000, mode)


if __name__ == "__main__":
    main()
