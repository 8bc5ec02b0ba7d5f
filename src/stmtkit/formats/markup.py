"""Minimal markup access by substring scanning.

Only the small, fixed tag vocabulary of bank statements is needed, so
elements are located by searching for literal open/close tags rather than
building a tree. Every lookup in the codecs goes through the helpers here,
so a streaming tag walker could replace them without touching call sites.
"""

import re
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator, NamedTuple, Optional
from xml.sax.saxutils import escape as _sax_escape, unescape as _sax_unescape

from stmtkit.domain.errors import MissingFieldError, ParseError
from stmtkit.utils.amount_parser import parse_amount

DEFAULT_CURRENCY = "EUR"

_ESCAPES = {'"': "&quot;", "'": "&apos;"}
_UNESCAPES = {"&quot;": '"', "&apos;": "'"}


class Element(NamedTuple):
    """Location of one element inside a content string."""

    start: int
    value_start: int
    value_end: int
    end: int
    attributes: str


@lru_cache(maxsize=None)
def _open_tag(tag: str) -> re.Pattern:
    # <Tag> or <Tag attr="..."> but never <TagSuffix>
    return re.compile(rf"<{re.escape(tag)}(\s[^>]*)?>")


def escape(text: str) -> str:
    """Escape ``& < > " '`` for element text and attribute values."""
    return _sax_escape(text, _ESCAPES)


def unescape(text: str) -> str:
    """Reverse :func:`escape`."""
    return _sax_unescape(text, _UNESCAPES)


def find_element(content: str, tag: str, start: int = 0) -> Optional[Element]:
    """Locate the first ``<tag>`` at or after ``start`` and its closing tag.

    The closing tag is the first ``</tag>`` after the opening one, so a
    same-named nested element closes early; callers that expect nesting
    unwrap explicitly.
    """
    match = _open_tag(tag).search(content, start)
    if match is None:
        return None
    close_tag = f"</{tag}>"
    value_end = content.find(close_tag, match.end())
    if value_end < 0:
        return None
    return Element(
        start=match.start(),
        value_start=match.end(),
        value_end=value_end,
        end=value_end + len(close_tag),
        attributes=match.group(1) or "",
    )


def element_block(content: str, tag: str) -> Optional[str]:
    """Return the raw interior of the first ``<tag>`` element, or None."""
    element = find_element(content, tag)
    if element is None:
        return None
    return content[element.value_start:element.value_end]


def element_value(content: str, tag: str) -> Optional[str]:
    """Return the trimmed, unescaped text of the first ``<tag>`` element."""
    block = element_block(content, tag)
    if block is None:
        return None
    return unescape(block.strip())


def non_empty_value(content: str, tag: str) -> Optional[str]:
    """Like :func:`element_value` but treat an empty element as absent."""
    value = element_value(content, tag)
    return value or None


def iter_blocks(content: str, tag: str) -> Iterator[str]:
    """Yield the interior of each successive ``<tag>`` element.

    Each search resumes just past the end of the previous block. An
    unterminated final block yields the remainder of the content.
    """
    pattern = _open_tag(tag)
    close_tag = f"</{tag}>"
    pos = 0
    while True:
        match = pattern.search(content, pos)
        if match is None:
            return
        value_end = content.find(close_tag, match.end())
        if value_end < 0:
            yield content[match.end():]
            return
        yield content[match.end():value_end]
        pos = value_end + len(close_tag)


def attribute(attributes: str, name: str) -> Optional[str]:
    """Read ``name="value"`` from an open tag's attribute text."""
    match = re.search(rf'\b{re.escape(name)}="([^"]*)"', attributes)
    if match is None:
        return None
    return unescape(match.group(1))


def amount_with_currency(content: str, tag: str = "Amt") -> tuple[int, str]:
    """Parse the first amount element and its ``Ccy`` attribute.

    Returns:
        Tuple of (minor units, currency code); currency defaults to EUR

    Raises:
        MissingFieldError: If no amount element is present
        ParseError: If the amount text is not a decimal number
    """
    element = find_element(content, tag)
    if element is None:
        if _open_tag(tag).search(content):
            raise ParseError(f"Unterminated <{tag}> element")
        raise MissingFieldError(tag)
    currency = attribute(element.attributes, "Ccy") or DEFAULT_CURRENCY
    amount = parse_amount(unescape(content[element.value_start:element.value_end]))
    return amount, currency


class MarkupWriter:
    """Indenting tag emitter for the writers."""

    def __init__(self, indent: str = "  "):
        self._lines: list[str] = []
        self._stack: list[str] = []
        self._indent = indent

    def _prefix(self) -> str:
        return self._indent * len(self._stack)

    def raw(self, line: str) -> None:
        self._lines.append(line)

    def open(self, tag: str, attributes: Optional[dict[str, str]] = None) -> None:
        self._lines.append(f"{self._prefix()}<{tag}{_render_attributes(attributes)}>")
        self._stack.append(tag)

    def close(self) -> None:
        tag = self._stack.pop()
        self._lines.append(f"{self._prefix()}</{tag}>")

    @contextmanager
    def element(self, tag: str, attributes: Optional[dict[str, str]] = None):
        self.open(tag, attributes)
        yield self
        self.close()

    def leaf(
        self, tag: str, value: Optional[str], attributes: Optional[dict[str, str]] = None
    ) -> None:
        """Write ``<tag>value</tag>``; nothing is written when value is None."""
        if value is None:
            return
        self._lines.append(
            f"{self._prefix()}<{tag}{_render_attributes(attributes)}>{escape(value)}</{tag}>"
        )

    def render(self) -> str:
        if self._stack:
            raise ValueError(f"Unclosed elements: {', '.join(self._stack)}")
        return "\n".join(self._lines) + "\n"


def _render_attributes(attributes: Optional[dict[str, str]]) -> str:
    if not attributes:
        return ""
    return "".join(f' {name}="{escape(value)}"' for name, value in attributes.items())
