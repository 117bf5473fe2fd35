"""Pinecone Memory MCP Tool Schemas -- 3 tools for agent-driven memory management."""

from pinecone_memory.types import MemoryCategory

TOOL_SCHEMAS = [
    {
        "name": "memory_store",
        "description": "Store a fact, preference, or decision in long-term memory. Use this when the user explicitly asks you to remember something.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "text": {"type": "string", "description": "The memory content to store."},
                "category": {
                    "type": "string",
                    "enum": list(MemoryCategory.ALL),
                    "description": "Category for the memory. Auto-detected if omitted.",
                },
            },
            "required": ["text"],
        },
    },
    {
        "name": "memory_search",
        "description": "Search long-term memory for relevant facts, preferences, or decisions.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query."},
                "limit": {"type": "integer", "description": "Maximum results to return (default: 5)."},
            },
            "required": ["query"],
        },
    },
    {
        "name": "memory_forget",
        "description": "Delete a memory by ID, or search for and delete a matching memory. Provide exactly one of memory_id or query.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "memory_id": {"type": "string", "description": "Exact memory ID to delete (also accepts 'memoryId')."},
                "memoryId": {"type": "string", "description": "Alias for memory_id"},
                "query": {"type": "string", "description": "Search query to find the memory to delete."},
            },
        },
    },
]
