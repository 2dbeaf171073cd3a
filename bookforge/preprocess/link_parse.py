"""Finding and parsing ``{{#...}}`` helper expressions in chapter text."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

__all__ = [
    "Anchor",
    "LineRange",
    "Link",
    "LinkKind",
    "find_links",
    "parse_include_path",
    "parse_rustdoc_include_path",
]

log = logging.getLogger(__name__)

_ESCAPE_CHAR = "\\"
_USIZE_MAX = 2**64 - 1
_UNSIGNED = re.compile(r"\+?[0-9]+")
_LINK = re.compile(
    r"\\\{\{#.*\}\}"  # an escaped link
    r"|"
    r"\{\{\s*"  # opening braces and whitespace
    r"#([a-zA-Z0-9_]+)"  # link type
    r"\s+"  # separating whitespace
    r"([^}]+)"  # target path and space separated properties
    r"\}\}"  # closing braces
)


class LinkKind(Enum):
    """The kind of helper expression."""

    ESCAPED = "escaped"
    INCLUDE = "include"
    PLAYGROUND = "playground"
    RUSTDOC_INCLUDE = "rustdoc_include"
    TITLE = "title"


@dataclass(frozen=True)
class LineRange:
    """A zero-based, end-exclusive range of lines; ``None`` leaves a side open."""

    start: int | None = None
    end: int | None = None


@dataclass(frozen=True)
class Anchor:
    """A named anchor delimiting the lines to include."""

    name: str


@dataclass(frozen=True)
class Link:
    """One helper expression found in a text, with its position."""

    start_index: int
    end_index: int
    kind: LinkKind
    link_text: str
    path: Path | None = None
    range_or_anchor: LineRange | Anchor | None = None
    props: tuple[str, ...] = ()
    title: str | None = None

    def relative_path(self, base) -> Path | None:
        """The directory holding the linked file, relative to ``base``.

        Returns ``None`` for links that do not name a file.
        """
        if self.path is None or self.kind in (LinkKind.ESCAPED, LinkKind.TITLE):
            return None
        joined = Path(base) / self.path
        parent = joined.parent
        if parent == joined:
            raise ValueError("Included file should not be /")
        return parent


def _parse_usize(text: str) -> int | None:
    if _UNSIGNED.fullmatch(text) is None:
        return None
    value = int(text)
    return value if value <= _USIZE_MAX else None


_ABSENT = object()


def _parse_range_or_anchor(parts: str | None) -> LineRange | Anchor:
    pieces = (parts or "").split(":", 2)
    first = pieces[0]

    number = _parse_usize(first)
    if number is not None:
        # line numbers given by users start at 1
        start: int | None = max(number - 1, 0)
    elif first == "":
        start = None
    else:
        return Anchor(first)

    end: object = _ABSENT
    if len(pieces) > 1:
        end = _parse_usize(pieces[1])

    if start is not None:
        if end is _ABSENT:
            return LineRange(start, start + 1)
        return LineRange(start, end)  # type: ignore[arg-type]
    if end is not _ABSENT and end is not None:
        return LineRange(None, end)  # type: ignore[arg-type]
    return LineRange()


def _split_path(path: str) -> tuple[Path, LineRange | Anchor]:
    name, sep, rest = path.partition(":")
    return Path(name), _parse_range_or_anchor(rest if sep else None)


def parse_include_path(path: str) -> tuple[Path, LineRange | Anchor]:
    """Split an ``include`` argument into its file path and line selection."""
    return _split_path(path)


def parse_rustdoc_include_path(path: str) -> tuple[Path, LineRange | Anchor]:
    """Split a ``rustdoc_include`` argument into its file path and line selection."""
    return _split_path(path)


def _from_match(match: re.Match[str]) -> Link | None:
    typ, rest = match.group(1), match.group(2)
    text = match.group(0)
    base = {
        "start_index": match.start(),
        "end_index": match.end(),
        "link_text": text,
    }

    if typ is not None and rest is not None:
        if typ == "title":
            return Link(kind=LinkKind.TITLE, title=rest, **base)
        words = rest.split()
        if not words:
            return None
        file_arg, props = words[0], tuple(words[1:])
        if typ == "include":
            path, selection = parse_include_path(file_arg)
            return Link(
                kind=LinkKind.INCLUDE, path=path, range_or_anchor=selection, **base
            )
        if typ == "rustdoc_include":
            path, selection = parse_rustdoc_include_path(file_arg)
            return Link(
                kind=LinkKind.RUSTDOC_INCLUDE,
                path=path,
                range_or_anchor=selection,
                **base,
            )
        if typ == "playpen":
            log.warning(
                "the {{#playpen}} expression has been renamed to {{#playground}}, "
                "please update your book to use the new name"
            )
            typ = "playground"
        if typ == "playground":
            return Link(
                kind=LinkKind.PLAYGROUND, path=Path(file_arg), props=props, **base
            )
        return None

    if typ is None and rest is None and text.startswith(_ESCAPE_CHAR):
        return Link(kind=LinkKind.ESCAPED, **base)
    return None


def find_links(contents: str) -> Iterator[Link]:
    """Yield every recognised helper expression in ``contents``, in order."""
    for match in _LINK.finditer(contents):
        link = _from_match(match)
        if link is not None:
            yield link