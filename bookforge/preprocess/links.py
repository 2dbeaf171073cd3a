"""Expanding ``{{#include}}``, ``{{#rustdoc_include}}``, ``{{#playground}}``
and ``{{#title}}`` helpers in chapter text."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from bookforge.preprocess.context import Preprocessor, PreprocessorContext
from bookforge.preprocess.link_parse import (
    Anchor,
    LineRange,
    Link,
    LinkKind,
    find_links,
)

__all__ = ["LinkPreprocessor", "render_link", "replace_all"]

log = logging.getLogger(__name__)

MAX_LINK_NESTED_DEPTH = 10

_ANCHOR_START = re.compile(r"ANCHOR:\s*(?P<name>[\w-]+)")
_ANCHOR_END = re.compile(r"ANCHOR_END:\s*(?P<name>[\w-]+)")


def _lines(s: str) -> list[str]:
    parts = s.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    return [p[:-1] if p.endswith("\r") else p for p in parts]


def _in_range(index: int, selection: LineRange) -> bool:
    start = selection.start or 0
    return index >= start and (selection.end is None or index < selection.end)


def _is_anchor_line(line: str) -> bool:
    return bool(_ANCHOR_START.search(line) or _ANCHOR_END.search(line))


def _matches(pattern: re.Pattern[str], line: str, name: str) -> bool:
    found = pattern.search(line)
    return found is not None and found.group("name") == name


def _take_lines(s: str, selection: LineRange) -> str:
    return "\n".join(
        line for i, line in enumerate(_lines(s)) if _in_range(i, selection)
    )


def _take_anchored_lines(s: str, anchor: str) -> str:
    taken: list[str] = []
    inside = False
    for line in _lines(s):
        if inside:
            if _matches(_ANCHOR_END, line, anchor):
                break
            if not _is_anchor_line(line):
                taken.append(line)
        elif _matches(_ANCHOR_START, line, anchor):
            inside = True
    return "\n".join(taken)


def _take_rustdoc_include_lines(s: str, selection: LineRange) -> str:
    return "\n".join(
        line if _in_range(i, selection) else f"# {line}"
        for i, line in enumerate(_lines(s))
    )


def _take_rustdoc_include_anchored_lines(s: str, anchor: str) -> str:
    taken: list[str] = []
    inside = False
    for line in _lines(s):
        if inside:
            if _matches(_ANCHOR_END, line, anchor):
                inside = False
            elif not _is_anchor_line(line):
                taken.append(line)
        elif _matches(_ANCHOR_START, line, anchor):
            inside = True
        elif not _is_anchor_line(line):
            taken.append(f"# {line}")
    return "\n".join(taken)


def _read(link: Link, target: Path) -> str:
    try:
        return target.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise OSError(
            f"Could not read file for link {link.link_text} ({target})"
        ) from e


def render_link(link: Link, base) -> str:
    """Return the text that replaces ``link``, reading files relative to ``base``.

    Title links render as an empty string. Raises :class:`OSError` when a
    linked file cannot be read.
    """
    base = Path(base)
    kind = link.kind
    if kind is LinkKind.ESCAPED:
        return link.link_text[1:]
    if kind is LinkKind.TITLE:
        return ""

    target = base / link.path
    contents = _read(link, target)
    selection = link.range_or_anchor

    if kind is LinkKind.INCLUDE:
        if isinstance(selection, Anchor):
            return _take_anchored_lines(contents, selection.name)
        return _take_lines(contents, selection or LineRange())
    if kind is LinkKind.RUSTDOC_INCLUDE:
        if isinstance(selection, Anchor):
            return _take_rustdoc_include_anchored_lines(contents, selection.name)
        return _take_rustdoc_include_lines(contents, selection or LineRange())

    ftype = "rust," if link.props else "rust"
    if not contents.endswith("\n"):
        contents += "\n"
    return f"```{ftype}{','.join(link.props)}\n{contents}```\n"


def replace_all(s: str, path, source, depth: int, chapter_title: str) -> tuple[str, str]:
    """Expand every helper in ``s``, recursing into included files.

    Returns the expanded text and the chapter title, which a ``{{#title}}``
    helper may have replaced. Helpers that fail are left in the text as written.
    """
    path = Path(path)
    pieces: list[str] = []
    previous_end = 0

    for link in find_links(s):
        pieces.append(s[previous_end:link.start_index])
        try:
            new_content = render_link(link, path)
        except OSError as e:
            log.error('Error updating "%s", %s', link.link_text, e)
            if e.__cause__ is not None:
                log.warning("Caused By: %s", e.__cause__)
            previous_end = link.start_index
            continue

        if link.kind is LinkKind.TITLE:
            chapter_title = link.title or ""

        if depth < MAX_LINK_NESTED_DEPTH:
            rel_path = link.relative_path(path)
            if rel_path is not None:
                new_content, chapter_title = replace_all(
                    new_content, rel_path, source, depth + 1, chapter_title
                )
            pieces.append(new_content)
        else:
            log.error(
                "Stack depth exceeded in %s. Check for cyclic includes", source
            )
        previous_end = link.end_index

    pieces.append(s[previous_end:])
    return "".join(pieces), chapter_title


class LinkPreprocessor(Preprocessor):
    """Expands the include, playground and title helpers in every chapter."""

    NAME = "links"

    def name(self) -> str:
        return self.NAME

    def process_chapter(
        self, ctx: PreprocessorContext, path, name: str, content: str
    ) -> str:
        """Return the expanded ``content`` of the chapter at ``path``.

        A title override is recorded in ``ctx.chapter_titles``.
        """
        path = Path(path)
        src_dir = ctx.root / ctx.config.book.src
        base = src_dir / path.parent
        expanded, title = replace_all(content, base, path, 0, name)
        if title != name:
            ctx.chapter_titles[path] = title
        return expanded

    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        def visit(item: Any) -> None:
            path = getattr(item, "path", None)
            if path is not None:
                item.content = self.process_chapter(
                    ctx, path, item.name, item.content
                )

        book.for_each_mut(visit)
        return book