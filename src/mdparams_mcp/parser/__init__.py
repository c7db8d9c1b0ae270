"""Markdown parsing utilities."""

from .markdown import parse_markdown_to_index, DocumentIndex, Item, ItemKind
from .query import ItemQuery, QUERY_OPERATIONS, run_query

__all__ = [
    "parse_markdown_to_index",
    "DocumentIndex",
    "Item",
    "ItemKind",
    "ItemQuery",
    "QUERY_OPERATIONS",
    "run_query",
]
