"""Pinecone Memory HTTP Server -- Streamable HTTP transport for the MCP server.

Wraps the stdio MCP server in a Starlette ASGI app using the MCP SDK's
StreamableHTTPSessionManager, and exposes the agent hooks over plain HTTP:

- ``/mcp``                   streamable-HTTP MCP endpoint
- ``POST /hooks/{name}``     ``before_agent_start`` / ``agent_end`` dispatch
- ``/health``                liveness probe
- ``/.well-known/mcp.json``  server card
"""

import contextlib
import logging
import secrets
from collections.abc import AsyncIterator
from pathlib import Path

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route
from starlette.types import Receive, Scope, Send

from mcp.server.streamable_http_manager import StreamableHTTPSessionManager

from pinecone_memory.server.hook_server import build_hook_handlers

logger = logging.getLogger("pinecone_memory.http_server")


def get_or_create_api_key(home: Path) -> str:
    """Load the API key from <home>/api_key, or generate one."""
    key_path = home / "api_key"
    if key_path.exists():
        return key_path.read_text().strip()
    key = secrets.token_urlsafe(32)
    key_path.parent.mkdir(parents=True, exist_ok=True)
    key_path.write_text(key + "\n")
    key_path.chmod(0o600)
    return key


def _authorized(request: Request, api_key: str | None) -> bool:
    if not api_key:
        return True
    provided = request.headers.get("x-api-key") or request.query_params.get("api_key")
    return provided == api_key


def create_http_app(server, bridge, api_key: str | None = None) -> Starlette:
    """Create a Starlette ASGI app wrapping the MCP server.

    Args:
        server: The MCP Server instance from ``create_server(bridge)``.
        bridge: The MemoryBridge the hook endpoints dispatch to.
        api_key: Optional API key for authentication. None disables auth.
    """
    session_manager = StreamableHTTPSessionManager(
        app=server,
        json_response=True,
        stateless=True,
    )
    hook_handlers = build_hook_handlers(bridge)

    async def mcp_asgi_app(scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI app for the /mcp endpoint; delegates to StreamableHTTPSessionManager."""
        if api_key:
            request = Request(scope, receive)
            if not _authorized(request, api_key):
                response = JSONResponse({"error": "Unauthorized"}, status_code=401)
                await response(scope, receive, send)
                return
        await session_manager.handle_request(scope, receive, send)

    async def hook(request: Request):
        if not _authorized(request, api_key):
            return JSONResponse({"error": "Unauthorized"}, status_code=401)
        name = request.path_params["name"]
        handler = hook_handlers.get(name)
        if not handler:
            return JSONResponse({"error": f"Unknown hook: {name}"}, status_code=404)
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)
        if not isinstance(payload, dict):
            return JSONResponse({"error": "Body must be a JSON object"}, status_code=400)
        return JSONResponse(await handler(payload))

    async def health(request: Request):
        return JSONResponse({"status": "ok", "server": "pinecone-memory"})

    async def server_card(request: Request):
        from pinecone_memory import __version__
        from pinecone_memory.server.tool_schemas import TOOL_SCHEMAS

        return JSONResponse({
            "name": "pinecone-memory",
            "version": __version__,
            "description": "Long-term memory for conversational agents, backed by Pinecone",
            "transports": [
                {"type": "streamable-http", "url": "/mcp"},
                {"type": "stdio", "command": "pinecone-memory serve"},
            ],
            "tools_count": len(TOOL_SCHEMAS),
            "hooks": sorted(hook_handlers),
        })

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with session_manager.run():
            yield

    app = Starlette(
        routes=[
            Mount("/mcp", app=mcp_asgi_app),
            Route("/hooks/{name}", endpoint=hook, methods=["POST"]),
            Route("/health", endpoint=health),
            Route("/.well-known/mcp.json", endpoint=server_card),
            Route("/.well-known/mcp/server-card.json", endpoint=server_card),
        ],
        lifespan=lifespan,
    )
    return app


async def run_http(host: str, port: int, api_key: str | None, bridge=None) -> None:
    """Create the bridge and HTTP app, then run uvicorn."""
    import uvicorn

    from pinecone_memory.server.hook_server import start_hook_server, stop_hook_server
    from pinecone_memory.server.mcp_server import create_server

    if bridge is None:
        from pinecone_memory.bridge import create_bridge

        bridge = create_bridge()

    hook_srv = await start_hook_server(bridge)
    app = create_http_app(create_server(bridge), bridge, api_key=api_key)
    config = uvicorn.Config(app, host=host, port=port, log_level="info")
    srv = uvicorn.Server(config)
    try:
        await srv.serve()
    finally:
        await stop_hook_server(hook_srv, bridge.settings.hook_socket)
