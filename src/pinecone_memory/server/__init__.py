"""MCP, HTTP and hook transports for the memory bridge."""
