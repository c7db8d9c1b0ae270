"""Line classification for headers and list items."""

import re
from dataclasses import dataclass
from typing import Optional, Union

# Patterns are tried in this order; the first match wins.
HEADER_PATTERN = re.compile(r'^#+\s+(.*)', re.ASCII)
ALT_HEADER_PATTERN = re.compile(r'^(=+|-+)\s*$', re.ASCII)
NOT_VALID_TITLE_PATTERN = re.compile(r'^(\s*[#*\->+]|\d\.)\s+', re.ASCII)
CHECKBOX_ITEM_PATTERN = re.compile(r'^(\s*)([-*]) \[([xX ])\]\s+(.*)', re.ASCII)
LIST_ITEM_PATTERN = re.compile(r'^(\s*)([-*])\s+(.*)', re.ASCII)
ORDERED_ITEM_PATTERN = re.compile(r'^(\s*)(\d)\.\s+(.*)', re.ASCII)


@dataclass(frozen=True)
class HeaderLine:
    """An ATX header: `# Title`."""
    title: str


@dataclass(frozen=True)
class AltHeaderLine:
    """A Setext underline (`===` or `---`); names the previous line."""
    style: str


@dataclass(frozen=True)
class CheckboxItemLine:
    indent: int
    marker: str
    checked: bool
    text: str


@dataclass(frozen=True)
class UnorderedItemLine:
    indent: int
    marker: str
    text: str


@dataclass(frozen=True)
class OrderedItemLine:
    indent: int
    marker: str
    text: str


ItemLine = Union[CheckboxItemLine, UnorderedItemLine, OrderedItemLine]
LineMatch = Union[HeaderLine, AltHeaderLine, ItemLine]


def match_header(line: str) -> Optional[HeaderLine]:
    """Match an ATX header. Trailing `#` characters are kept in the title."""
    match = HEADER_PATTERN.match(line)
    if not match:
        return None
    return HeaderLine(title=match.group(1))


def match_alt_header(line: str) -> Optional[AltHeaderLine]:
    """Match a line made only of `=` or only of `-` characters."""
    match = ALT_HEADER_PATTERN.match(line)
    if not match:
        return None
    return AltHeaderLine(style=match.group(1)[0])


def is_valid_title(line: str) -> bool:
    """
    Check whether a line may be promoted to a header by a Setext underline.

    Blank lines and lines that already look like headers, quotes or list
    items do not qualify.
    """
    if not line.strip():
        return False
    return NOT_VALID_TITLE_PATTERN.match(line) is None


def match_checkbox_item(line: str) -> Optional[CheckboxItemLine]:
    match = CHECKBOX_ITEM_PATTERN.match(line)
    if not match:
        return None
    return CheckboxItemLine(
        indent=len(match.group(1)),
        marker=match.group(2),
        checked=match.group(3).lower() == 'x',
        text=match.group(4),
    )


def match_unordered_item(line: str) -> Optional[UnorderedItemLine]:
    match = LIST_ITEM_PATTERN.match(line)
    if not match:
        return None
    return UnorderedItemLine(
        indent=len(match.group(1)),
        marker=match.group(2),
        text=match.group(3),
    )


def match_ordered_item(line: str) -> Optional[OrderedItemLine]:
    """Match `1. text`. Only a single digit is accepted as the number."""
    match = ORDERED_ITEM_PATTERN.match(line)
    if not match:
        return None
    return OrderedItemLine(
        indent=len(match.group(1)),
        marker=match.group(2),
        text=match.group(3),
    )


def classify_item(line: str) -> Optional[ItemLine]:
    """
    Classify a line as a list item.

    Checkbox syntax is a refinement of bullet syntax, so it is tried first.
    """
    for matcher in (match_checkbox_item, match_unordered_item, match_ordered_item):
        result = matcher(line)
        if result is not None:
            return result
    return None


def classify_line(line: str) -> Optional[LineMatch]:
    """
    Classify a single line.

    Returns the first of header, alt-header marker, checkbox, unordered or
    ordered item that matches, or None. An alt-header marker only becomes a
    header when combined with the previous line (see the indexer).
    """
    header = match_header(line)
    if header is not None:
        return header
    alt_header = match_alt_header(line)
    if alt_header is not None:
        return alt_header
    return classify_item(line)
