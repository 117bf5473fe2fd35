"""pinecone-memory -- Long-term memory for conversational agents, backed by Pinecone.

Direct Python API -- no MCP server required::

    import asyncio
    from pinecone_memory import create_bridge

    bridge = create_bridge()
    asyncio.run(bridge.memory_store("I always prefer TypeScript for new projects"))
    print(asyncio.run(bridge.recall("which language should we use?")))

For agent integration, run ``pinecone-memory serve`` (MCP over stdio) or
``pinecone-memory serve --http``.
"""

__version__ = "0.3.0"

from pinecone_memory.bridge import MemoryBridge, create_bridge
from pinecone_memory.config import Settings, load_settings
from pinecone_memory.store import PineconeMemoryStore, SearchHit

__all__ = [
    "__version__",
    "MemoryBridge",
    "PineconeMemoryStore",
    "SearchHit",
    "Settings",
    "create_bridge",
    "load_settings",
]
