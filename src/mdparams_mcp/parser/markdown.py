"""Markdown parsing to index list items under their section headers."""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from .lines import (
    CheckboxItemLine,
    ItemLine,
    OrderedItemLine,
    classify_item,
    is_valid_title,
    match_alt_header,
    match_header,
)

LINE_BREAK_PATTERN = re.compile(r'\r\n|\r|\n')


class ItemKind(str, Enum):
    PLAIN_UNORDERED = "plain_unordered"
    ORDERED = "ordered"
    CHECKBOX = "checkbox"


@dataclass(frozen=True)
class Item:
    """A list item found under a header."""
    indent: int
    marker: str
    kind: ItemKind
    text: str
    checked: bool = False

    @property
    def is_checkbox(self) -> bool:
        return self.kind is ItemKind.CHECKBOX

    @property
    def is_ordered(self) -> bool:
        return self.kind is ItemKind.ORDERED

    @classmethod
    def from_line(cls, line: ItemLine) -> "Item":
        """Build an Item from a classified item line."""
        if isinstance(line, CheckboxItemLine):
            return cls(line.indent, line.marker, ItemKind.CHECKBOX, line.text, line.checked)
        if isinstance(line, OrderedItemLine):
            return cls(line.indent, line.marker, ItemKind.ORDERED, line.text)
        return cls(line.indent, line.marker, ItemKind.PLAIN_UNORDERED, line.text)

    def to_dict(self) -> dict:
        return {
            "indent": self.indent,
            "marker": self.marker,
            "kind": self.kind.value,
            "checked": self.checked,
            "text": self.text,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Item":
        return cls(
            indent=data["indent"],
            marker=data["marker"],
            kind=ItemKind(data["kind"]),
            text=data["text"],
            checked=data.get("checked", False),
        )


class DocumentIndex(Mapping[str, Mapping[str, Item]]):
    """
    Read-only mapping of header title -> (item text -> Item).

    Headers and items keep the order in which they first appeared in the
    document. Buckets are exposed as mapping proxies, so the index cannot be
    changed once built.
    """

    def __init__(self, buckets: Optional[dict[str, dict[str, Item]]] = None):
        self._buckets = MappingProxyType({
            title: MappingProxyType(dict(items))
            for title, items in (buckets or {}).items()
        })

    def __getitem__(self, title: str) -> Mapping[str, Item]:
        return self._buckets[title]

    def __iter__(self) -> Iterator[str]:
        return iter(self._buckets)

    def __len__(self) -> int:
        return len(self._buckets)

    def __eq__(self, other: object) -> bool:
        # Order-sensitive, unlike the Mapping default.
        if not isinstance(other, DocumentIndex):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"DocumentIndex({len(self)} headers)"

    def items_of(self, title: str) -> list[Item]:
        """Items under a header, in document order. Unknown titles yield []."""
        return list(self._buckets.get(title, {}).values())

    def to_dict(self) -> dict[str, list[dict]]:
        """Serialize to plain JSON types; item lists keep document order."""
        return {
            title: [item.to_dict() for item in items.values()]
            for title, items in self._buckets.items()
        }

    @classmethod
    def from_dict(cls, data: dict[str, list[dict]]) -> "DocumentIndex":
        buckets: dict[str, dict[str, Item]] = {}
        for title, raw_items in data.items():
            bucket = buckets.setdefault(title, {})
            for raw in raw_items:
                item = Item.from_dict(raw)
                bucket[item.text] = item
        return cls(buckets)


@dataclass
class _ParseState:
    """State threaded through the single pass over lines."""
    current_title: str = ""
    previous_line: str = ""
    just_saw_header: bool = False
    buckets: dict[str, dict[str, Item]] = field(default_factory=dict)

    def open_header(self, title: str) -> None:
        # Re-declaring a header empties its bucket but keeps its position.
        self.buckets[title] = {}
        self.current_title = title
        self.just_saw_header = True

    def add_item(self, item: Item) -> None:
        # Same text under the same header: attributes replaced, position kept.
        self.buckets.setdefault(self.current_title, {})[item.text] = item


def split_lines(content: str) -> list[str]:
    """Split text into logical lines, accepting \\n, \\r\\n and \\r endings."""
    if not content:
        return []
    lines = LINE_BREAK_PATTERN.split(content)
    if lines and lines[-1] == '':
        lines.pop()
    return lines


def _step(state: _ParseState, line: str) -> _ParseState:
    header = match_header(line)
    if header is not None:
        state.open_header(header.title)
    elif (
        not state.just_saw_header
        and match_alt_header(line) is not None
        and is_valid_title(state.previous_line)
    ):
        state.open_header(state.previous_line)
    else:
        state.just_saw_header = False
        item_line = classify_item(line)
        if item_line is not None:
            state.add_item(Item.from_line(item_line))
    state.previous_line = line
    return state


def parse_markdown_to_index(content: str) -> DocumentIndex:
    """
    Parse markdown content into a header -> items index.

    Each ATX header (`# Title`) or Setext header (`Title` underlined with
    `===` or `---`) opens a bucket; checkbox, bulleted and numbered list
    items are filed under the nearest preceding header. Lines that are
    neither are ignored, so any string parses.

    Items before the first header land in the "" bucket.
    """
    state = _ParseState()
    for line in split_lines(content):
        state = _step(state, line)
    return DocumentIndex(state.buckets)
