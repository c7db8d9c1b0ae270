"""MCP tool implementations."""

from .index_local import index_local
from .index_repo import index_repo
from .list_repos import list_repos
from .get_headers import get_headers
from .query_items import get_items, query_items, query_markdown

__all__ = [
    "index_local",
    "index_repo",
    "list_repos",
    "get_headers",
    "get_items",
    "query_items",
    "query_markdown",
]
