"""MCP server indexing Markdown headers and list items."""
