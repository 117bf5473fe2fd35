"""Pinecone Memory CLI -- memory commands, status, logs, and server management."""

import argparse
import asyncio
import json
import sys

from pinecone_memory.exceptions import MemoryLayerError
from pinecone_memory.types import MemoryCategory

_LOOPBACK_HOSTS = ("127.0.0.1", "localhost", "::1")


def _bridge():
    from pinecone_memory.bridge import create_bridge

    try:
        return create_bridge()
    except MemoryLayerError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _run(coro):
    """Run a bridge coroutine; configuration and store errors exit with status 1."""
    try:
        return asyncio.run(coro)
    except (MemoryLayerError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_search(args):
    """Search memories by semantic similarity."""
    query = " ".join(args.query).strip()
    if not query:
        print("Usage: pinecone-memory search <query> [--limit N]", file=sys.stderr)
        sys.exit(1)

    bridge = _bridge()
    hits = _run(bridge.search(query, args.limit))

    if args.json:
        out = [
            {
                "id": h.id,
                "score": round(h.score, 2),
                "category": h.category,
                "content": h.text,
                "captured_at": h.metadata.get("captured_at"),
            }
            for h in hits
        ]
        print(json.dumps({"results": out, "count": len(out)}, indent=2))
        return

    if not hits:
        print("No matching memories found.")
        return
    for hit in hits:
        cat = f" [{hit.category}]" if hit.category else ""
        print(f"  {hit.score:.2f}{cat}  {hit.id}")
        print(f"    {hit.text}")
        print()


def cmd_store(args):
    """Store a memory (skipped if a near-duplicate exists)."""
    text = " ".join(args.text).strip()
    if not text:
        print("Usage: pinecone-memory store <text> [-c CATEGORY]", file=sys.stderr)
        sys.exit(1)
    print(_run(_bridge().memory_store(text, args.category)))


def cmd_forget(args):
    """Delete a memory by id, or by an unambiguous query match."""
    print(_run(_bridge().memory_forget(memory_id=args.id, query=args.query)))


def cmd_stats(args):
    """Show index status and active configuration."""
    stats = _run(_bridge().stats())
    if getattr(args, "json", False):
        print(json.dumps(stats, indent=2))
        return
    print("[pinecone-memory] Configuration:")
    width = max(len(k) for k in stats) + 2
    for key, value in stats.items():
        print(f"  {(key + ':').ljust(width)} {value}")


def cmd_logs(args):
    """Show recent entries from hooks.log."""
    from pinecone_memory.config import load_settings

    hooks_log = load_settings().hook_log
    if not hooks_log.exists():
        print("No hooks.log found; no hook activity recorded.")
        return

    n = args.lines
    lines = hooks_log.read_text().strip().split("\n")
    recent = lines[-n:] if len(lines) > n else lines
    print(f"--- Last {len(recent)} lines from {hooks_log} ---\n")
    for line in recent:
        print(line)


def cmd_serve(args):
    """Run the MCP server (stdio by default, streamable HTTP with --http)."""
    if not args.http:
        from pinecone_memory.server.mcp_server import main

        asyncio.run(main())
        return

    from pinecone_memory.server.http_server import get_or_create_api_key, run_http

    bridge = _bridge()
    api_key = args.api_key
    if api_key is None and args.host not in _LOOPBACK_HOSTS:
        # Never expose an unauthenticated server beyond loopback
        api_key = get_or_create_api_key(bridge.settings.home)
        print(f"API key: {bridge.settings.home / 'api_key'}", file=sys.stderr)
    asyncio.run(run_http(args.host, args.port, api_key, bridge=bridge))


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="pinecone-memory",
        description="Pinecone-backed long-term memory for conversational agents",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- Memory commands ---
    search_parser = subparsers.add_parser("search", help="Search memories by semantic similarity")
    search_parser.add_argument("query", nargs="+", help="Search text")
    search_parser.add_argument("--limit", type=int, default=None, help="Max results (default: topK setting)")
    search_parser.add_argument("--json", action="store_true", help="Output as JSON")

    store_parser = subparsers.add_parser("store", help="Store a memory")
    store_parser.add_argument("text", nargs="+", help="Memory content")
    store_parser.add_argument(
        "-c",
        "--category",
        choices=list(MemoryCategory.ALL),
        default=None,
        help="Memory category (auto-detected if omitted)",
    )

    forget_parser = subparsers.add_parser("forget", help="Delete a memory by id or query")
    forget_target = forget_parser.add_mutually_exclusive_group(required=True)
    forget_target.add_argument("--id", help="Exact memory id to delete")
    forget_target.add_argument("--query", help="Search query to find the memory to delete")

    # --- Admin commands ---
    stats_parser = subparsers.add_parser("stats", help="Show index status and configuration")
    stats_parser.add_argument("--json", action="store_true", help="Output as JSON")
    logs_parser = subparsers.add_parser("logs", help="Show recent hook activity from hooks.log")
    logs_parser.add_argument("-n", "--lines", type=int, default=50, help="Number of lines to show (default: 50)")

    serve_parser = subparsers.add_parser("serve", help="Run MCP server (stdio mode, or --http)")
    serve_parser.add_argument("--http", action="store_true", help="Serve streamable HTTP instead of stdio")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8088, help="HTTP port (default: 8088)")
    serve_parser.add_argument("--api-key", default=None, help="Require this key in the x-api-key header")

    args = parser.parse_args(argv)

    commands = {
        "search": cmd_search,
        "store": cmd_store,
        "forget": cmd_forget,
        "stats": cmd_stats,
        "logs": cmd_logs,
        "serve": cmd_serve,
    }

    if args.command in commands:
        commands[args.command](args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
