"""Filtered queries over a parsed document index."""

from typing import Callable, Union

from .markdown import DocumentIndex, Item, ItemKind, parse_markdown_to_index

# Query operations exposed to tool callers, in the order they are documented.
QUERY_OPERATIONS = (
    "checkbox_items",
    "checked_items",
    "unchecked_items",
    "all_checked",
    "none_checked",
    "unordered_list_items",
    "ordered_list_items",
)


class ItemQuery:
    """
    Read-only queries over the items under a header.

    Titles are matched exactly. A title that is not in the index behaves
    like an empty section: list queries return [] and the all/none checks
    are vacuously True.
    """

    def __init__(self, index: DocumentIndex):
        self.index = index

    @classmethod
    def from_markdown(cls, content: str) -> "ItemQuery":
        return cls(parse_markdown_to_index(content))

    def filter_items(self, title: str, predicate: Callable[[Item], bool]) -> list[str]:
        """Texts of the items under `title` that satisfy `predicate`."""
        return [item.text for item in self.index.items_of(title) if predicate(item)]

    def checkbox_items(self, title: str) -> list[str]:
        return self.filter_items(title, lambda it: it.is_checkbox)

    def checked_items(self, title: str) -> list[str]:
        return self.filter_items(title, lambda it: it.is_checkbox and it.checked)

    def unchecked_items(self, title: str) -> list[str]:
        return self.filter_items(title, lambda it: it.is_checkbox and not it.checked)

    def all_checked(self, title: str) -> bool:
        return not self.unchecked_items(title)

    def none_checked(self, title: str) -> bool:
        return not self.checked_items(title)

    def unordered_list_items(self, title: str) -> list[str]:
        """Plain bullet items only; checkboxes are excluded."""
        return self.filter_items(title, lambda it: it.kind is ItemKind.PLAIN_UNORDERED)

    def ordered_list_items(self, title: str) -> list[str]:
        return self.filter_items(title, lambda it: it.is_ordered)


def run_query(query: ItemQuery, operation: str, title: str) -> Union[list[str], bool]:
    """Run a named query operation. Raises ValueError for unknown names."""
    if operation not in QUERY_OPERATIONS:
        raise ValueError(
            f"Unknown query: {operation}. Expected one of: {', '.join(QUERY_OPERATIONS)}"
        )
    return getattr(query, operation)(title)
