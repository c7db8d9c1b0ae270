"""Tests for MCP server tool listing and dispatch."""

import json

import pytest

from mdparams_mcp.parser.query import QUERY_OPERATIONS
from mdparams_mcp.server import call_tool, handle_delete_index, list_tools
from mdparams_mcp.storage.index_store import IndexStore
from mdparams_mcp.parser.markdown import parse_markdown_to_index


def _payload(contents) -> dict:
    assert len(contents) == 1
    return json.loads(contents[0].text)


class TestListTools:
    @pytest.mark.asyncio
    async def test_tool_names(self):
        tools = await list_tools()
        assert [t.name for t in tools] == [
            "index_local",
            "index_repo",
            "list_repos",
            "get_headers",
            "get_items",
            "query_items",
            "query_markdown",
            "delete_index",
        ]

    @pytest.mark.asyncio
    async def test_query_enum(self):
        tools = {t.name: t for t in await list_tools()}
        schema = tools["query_items"].inputSchema
        assert schema["properties"]["query"]["enum"] == list(QUERY_OPERATIONS)


class TestCallTool:
    @pytest.mark.asyncio
    async def test_query_markdown(self, tasks_markdown):
        result = _payload(await call_tool("query_markdown", {
            "content": tasks_markdown,
            "title": "Tasks",
            "query": "checkbox_items",
        }))
        assert result["result"] == ["Buy milk", "Walk dog"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        result = _payload(await call_tool("no_such_tool", {}))
        assert result == {"error": "Unknown tool: no_such_tool"}

    @pytest.mark.asyncio
    async def test_missing_argument_reported(self):
        result = _payload(await call_tool("query_markdown", {"content": "# T"}))
        assert "error" in result


class TestDeleteIndex:
    def test_delete(self, storage_dir, tasks_markdown):
        store = IndexStore(storage_dir)
        store.save_index(
            "local", "notes", ["TASKS.md"],
            {"TASKS.md": parse_markdown_to_index(tasks_markdown)},
            {"TASKS.md": tasks_markdown},
        )
        result = handle_delete_index("notes", storage_path=storage_dir)
        assert result["success"] is True
        assert store.list_repos() == []

    def test_not_found(self, storage_dir):
        assert "error" in handle_delete_index("nothing", storage_path=storage_dir)
        result = handle_delete_index("local/nothing", storage_path=storage_dir)
        assert result["success"] is False
