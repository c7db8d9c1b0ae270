"""MCP Server exposing Markdown checklist and list-item queries."""

import asyncio
import json
import logging
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from .parser.query import QUERY_OPERATIONS
from .tools.index_repo import index_repo as do_index_repo
from .tools.index_local import index_local as do_index_local
from .tools.list_repos import list_repos as do_list_repos
from .tools.get_headers import get_headers as do_get_headers, _resolve_repo
from .tools.query_items import (
    get_items as do_get_items,
    query_items as do_query_items,
    query_markdown as do_query_markdown,
)
from .storage.index_store import IndexStore

logger = logging.getLogger(__name__)

# Create MCP server
server = Server("mdparams-mcp")

_QUERY_DESCRIPTION = """Query operation to run. One of:
- checkbox_items: all checkbox items
- checked_items: checkbox items marked [x]
- unchecked_items: checkbox items marked [ ]
- all_checked: true if no checkbox item is unchecked
- none_checked: true if no checkbox item is checked
- unordered_list_items: plain bullet items (checkboxes excluded)
- ordered_list_items: numbered items (single-digit numbers only)"""

_QUERY_PROPERTY = {
    "type": "string",
    "enum": list(QUERY_OPERATIONS),
    "description": _QUERY_DESCRIPTION,
}

_REPO_PROPERTY = {
    "type": "string",
    "description": "Source identifier (owner/repo, local/name, or just the name)",
}


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="index_local",
            description="""Index Markdown files from a local directory or a single Markdown file.

Every header (# Title or a Setext-underlined line) becomes a section, and
the checkbox, bulleted and numbered list items under it are recorded.
Run this once per source before querying it.

Features:
- Respects .gitignore rules
- Skips sensitive files and files containing secrets
- Symlink-safe (does not follow symlinks by default)""",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "description": "Local directory to crawl, or a .md/.markdown file",
                    },
                    "max_depth": {
                        "type": "integer",
                        "description": "Maximum directory depth to crawl (default: 5)",
                        "default": 5,
                    },
                    "include_hidden": {
                        "type": "boolean",
                        "description": "Whether to include hidden directories (starting with .)",
                        "default": False,
                    },
                    "follow_symlinks": {
                        "type": "boolean",
                        "description": "Whether to follow symbolic links (default: false for safety)",
                        "default": False,
                    },
                },
                "required": ["path"],
            },
        ),
        Tool(
            name="index_repo",
            description="""Index Markdown files of a GitHub repository.

Indexes every .md/.markdown file, or only file_path when given.
Private repositories need the GITHUB_TOKEN environment variable.
Blocked in local-only mode (MDPARAMS_LOCAL_ONLY=true).""",
            inputSchema={
                "type": "object",
                "properties": {
                    "url": {
                        "type": "string",
                        "description": "GitHub repository URL or owner/repo string",
                    },
                    "file_path": {
                        "type": "string",
                        "description": "Only index this file (e.g. 'docs/release-checklist.md')",
                    },
                },
                "required": ["url"],
            },
        ),
        Tool(
            name="list_repos",
            description="""List all indexed sources with file, header and item counts, plus totals.""",
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
        Tool(
            name="get_headers",
            description="""List the header titles of indexed Markdown files.

Returns, per file and in document order, every header with the number of
checkbox, bulleted and numbered items under it. Use the exact titles
returned here with get_items and query_items.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "repo": _REPO_PROPERTY,
                    "file_path": {
                        "type": "string",
                        "description": "Only list headers of this file",
                    },
                },
                "required": ["repo"],
            },
        ),
        Tool(
            name="get_items",
            description="""Get every list item under a header with its kind, marker, indent and checked state.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "repo": _REPO_PROPERTY,
                    "file_path": {
                        "type": "string",
                        "description": "Path of the file within the source",
                    },
                    "title": {
                        "type": "string",
                        "description": "Exact header title",
                    },
                },
                "required": ["repo", "file_path", "title"],
            },
        ),
        Tool(
            name="query_items",
            description="""Query the list items under a header of an indexed file.

Header titles match exactly. An unknown header behaves like an empty one:
list queries return [] and all_checked/none_checked return true.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "repo": _REPO_PROPERTY,
                    "file_path": {
                        "type": "string",
                        "description": "Path of the file within the source",
                    },
                    "title": {
                        "type": "string",
                        "description": "Exact header title",
                    },
                    "query": _QUERY_PROPERTY,
                },
                "required": ["repo", "file_path", "title", "query"],
            },
        ),
        Tool(
            name="query_markdown",
            description="""Query the list items under a header of a Markdown string, without indexing it.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "content": {
                        "type": "string",
                        "description": "Markdown document",
                    },
                    "title": {
                        "type": "string",
                        "description": "Exact header title",
                    },
                    "query": _QUERY_PROPERTY,
                },
                "required": ["content", "title", "query"],
            },
        ),
        Tool(
            name="delete_index",
            description="""Delete a source's stored index and cached Markdown.

The source will need to be re-indexed before it can be queried again.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "repo": _REPO_PROPERTY,
                },
                "required": ["repo"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    try:
        if name == "index_local":
            result = await do_index_local(
                path=arguments["path"],
                max_depth=arguments.get("max_depth", 5),
                include_hidden=arguments.get("include_hidden", False),
                follow_symlinks=arguments.get("follow_symlinks", False),
            )
        elif name == "index_repo":
            result = await do_index_repo(
                url=arguments["url"],
                file_path=arguments.get("file_path"),
            )
        elif name == "list_repos":
            result = do_list_repos()
        elif name == "get_headers":
            result = do_get_headers(
                repo=arguments["repo"],
                file_path=arguments.get("file_path"),
            )
        elif name == "get_items":
            result = do_get_items(
                repo=arguments["repo"],
                file_path=arguments["file_path"],
                title=arguments["title"],
            )
        elif name == "query_items":
            result = do_query_items(
                repo=arguments["repo"],
                file_path=arguments["file_path"],
                title=arguments["title"],
                query=arguments["query"],
            )
        elif name == "query_markdown":
            result = do_query_markdown(
                content=arguments["content"],
                title=arguments["title"],
                query=arguments["query"],
            )
        elif name == "delete_index":
            result = handle_delete_index(arguments["repo"])
        else:
            result = {"error": f"Unknown tool: {name}"}

        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    except Exception as e:
        logger.exception("Tool %s failed", name)
        error_result = {"error": str(e)}
        return [TextContent(type="text", text=json.dumps(error_result, indent=2))]


def handle_delete_index(repo: str, storage_path: Optional[str] = None) -> dict:
    """Handle delete_index tool call."""
    store = IndexStore(storage_path)
    owner, name, err = _resolve_repo(store, repo)
    if err:
        return err

    if store.delete_index(owner, name):
        return {"success": True, "message": f"Index deleted for {owner}/{name}"}
    return {"success": False, "error": f"No index found for {owner}/{name}"}


async def run_server():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def main():
    """Entry point for the MCP server."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
