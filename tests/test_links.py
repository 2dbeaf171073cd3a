from dataclasses import dataclass
from pathlib import Path

import pytest

from bookforge.config import Config
from bookforge.preprocess.context import PreprocessorContext
from bookforge.preprocess.link_parse import find_links
from bookforge.preprocess.links import LinkPreprocessor, render_link, replace_all


def _only_link(text):
    links = list(find_links(text))
    assert len(links) == 1
    return links[0]


def test_replace_all_escaped():
    start = r"""
        Some text over here.
        ```hbs
        \{{#include file.rs}} << an escaped link!
        ```"""
    end = r"""
        Some text over here.
        ```hbs
        {{#include file.rs}} << an escaped link!
        ```"""
    got, title = replace_all(start, "", "", 0, "test_replace_all_escaped")
    assert got == end
    assert title == "test_replace_all_escaped"


def test_set_chapter_title():
    start = """{{#title My Title}}
        # My Chapter
        """
    end = """
        # My Chapter
        """
    got, title = replace_all(start, "", "", 0, "test_set_chapter_title")
    assert got == end
    assert title == "My Title"


def test_include_whole_file(tmp_path):
    (tmp_path / "f.txt").write_text("one\ntwo\nthree\n")
    link = _only_link("{{#include f.txt}}")
    assert render_link(link, tmp_path) == "one\ntwo\nthree"


def test_include_line_range(tmp_path):
    (tmp_path / "f.txt").write_text("one\ntwo\nthree\nfour\n")
    assert render_link(_only_link("{{#include f.txt:2:3}}"), tmp_path) == "two\nthree"
    assert render_link(_only_link("{{#include f.txt:2}}"), tmp_path) == "two"
    assert render_link(_only_link("{{#include f.txt:3:}}"), tmp_path) == "three\nfour"
    assert render_link(_only_link("{{#include f.txt::2}}"), tmp_path) == "one\ntwo"


def test_include_anchor_skips_anchor_comments(tmp_path):
    (tmp_path / "f.rs").write_text(
        "x\n// ANCHOR: a\ny\n// ANCHOR: other\nz\n// ANCHOR_END: a\nw\n"
    )
    assert render_link(_only_link("{{#include f.rs:a}}"), tmp_path) == "y\nz"


def test_rustdoc_include_hides_other_lines(tmp_path):
    (tmp_path / "f.rs").write_text("a\nb\nc\n")
    link = _only_link("{{#rustdoc_include f.rs:2}}")
    assert render_link(link, tmp_path) == "# a\nb\n# c"


def test_rustdoc_include_anchor(tmp_path):
    (tmp_path / "f.rs").write_text("x\n// ANCHOR: a\ny\n// ANCHOR_END: a\nw\n")
    link = _only_link("{{#rustdoc_include f.rs:a}}")
    assert render_link(link, tmp_path) == "# x\ny\n# w"


def test_playground_with_properties(tmp_path):
    (tmp_path / "ex.rs").write_text("fn main() {}")
    link = _only_link("{{#playground ex.rs editable no_run}}")
    assert render_link(link, tmp_path) == "```rust,editable,no_run\nfn main() {}\n```\n"


def test_playground_without_properties(tmp_path):
    (tmp_path / "ex.rs").write_text("fn main() {}\n")
    link = _only_link("{{#playground ex.rs}}")
    assert render_link(link, tmp_path) == "```rust\nfn main() {}\n```\n"


def test_missing_file_raises(tmp_path):
    link = _only_link("{{#include nowhere.txt}}")
    with pytest.raises(OSError):
        render_link(link, tmp_path)


def test_replace_all_keeps_failed_link_text(tmp_path):
    text = "before {{#include nowhere.txt}} after"
    got, title = replace_all(text, tmp_path, "chapter.md", 0, "T")
    assert got == text
    assert title == "T"


def test_replace_all_nested_include(tmp_path):
    (tmp_path / "sub").mkdir()
    (tmp_path / "outer.md").write_text("outer {{#include sub/inner.md}}")
    (tmp_path / "sub" / "inner.md").write_text("inner")
    got, _ = replace_all("[{{#include outer.md}}]", tmp_path, "c.md", 0, "T")
    assert got == "[outer inner]"


def test_recursive_includes_are_capped(tmp_path):
    (tmp_path / "rec.md").write_text("Around\n{{#include rec.md}}")
    got, _ = replace_all("{{#include rec.md}}", tmp_path, "rec.md", 0, "T")
    assert got.count("Around") == 10


@dataclass
class _Chapter:
    name: str
    content: str
    path: Path | None


class _Book:
    def __init__(self, items):
        self.items = items

    def for_each_mut(self, callback):
        for item in self.items:
            callback(item)


def test_preprocessor_expands_chapters_and_records_titles(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "snippet.txt").write_text("included text\n")
    chapter = _Chapter("Chapter", "{{#title Custom}}\n{{#include snippet.txt}}", Path("chapter.md"))
    draft = _Chapter("Draft", "{{#include snippet.txt}}", None)
    ctx = PreprocessorContext(root=tmp_path, config=Config(), renderer="html")

    book = LinkPreprocessor().run(ctx, _Book([chapter, draft]))

    assert book.items[0].content == "\nincluded text"
    assert book.items[1].content == "{{#include snippet.txt}}"
    assert ctx.chapter_titles == {Path("chapter.md"): "Custom"}


def test_process_chapter_without_title_change(tmp_path):
    nested = tmp_path / "src" / "first"
    nested.mkdir(parents=True)
    (nested / "part.txt").write_text("part")
    ctx = PreprocessorContext(root=tmp_path, config=Config(), renderer="html")
    got = LinkPreprocessor().process_chapter(
        ctx, Path("first/chapter.md"), "Name", "x {{#include part.txt}} y"
    )
    assert got == "x part y"
    assert ctx.chapter_titles == {}
    assert LinkPreprocessor().name() == "links"