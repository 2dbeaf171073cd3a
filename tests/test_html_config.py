import tomllib
from pathlib import Path

import pytest

from bookforge.html_config import Fold, HtmlConfig, Playground, Print, Search

COMPLEX_HTML = """
theme = "./themedir"
default-theme = "rust"
curly-quotes = true
google-analytics = "123456"
additional-css = ["./foo/bar/baz.css"]
git-repository-url = "https://foo.com/"
git-repository-icon = "fa-code-fork"

[playground]
editable = true
editor = "ace"

[redirect]
"index.html" = "overview.html"
"nexted/page.md" = "https://example.com/"
"""


def test_defaults():
    cfg = HtmlConfig()
    assert cfg.copy_fonts is True
    assert cfg.curly_quotes is False
    assert cfg.search is None
    assert cfg.print == Print(enable=True)
    assert cfg.playground == Playground(
        editable=False, copyable=True, copy_js=True, line_numbers=False
    )
    assert cfg.fold == Fold(enable=False, level=0)


def test_search_defaults():
    s = Search()
    assert (s.limit_results, s.teaser_word_count) == (30, 30)
    assert (s.boost_title, s.boost_hierarchy, s.boost_paragraph) == (2, 1, 1)
    assert s.heading_split_level == 3
    assert s.expand is True and s.use_boolean_and is False


def test_load_complex_html_config():
    got = HtmlConfig.from_value(tomllib.loads(COMPLEX_HTML))
    should_be = HtmlConfig(
        curly_quotes=True,
        google_analytics="123456",
        additional_css=[Path("./foo/bar/baz.css")],
        theme=Path("./themedir"),
        default_theme="rust",
        playground=Playground(editable=True, copyable=True, copy_js=True, line_numbers=False),
        git_repository_url="https://foo.com/",
        git_repository_icon="fa-code-fork",
        redirect={
            "index.html": "overview.html",
            "nexted/page.md": "https://example.com/",
        },
    )
    assert got == should_be


def test_legacy_style_html_table():
    src = """
destination = "my-book"
theme = "my-theme"
curly-quotes = true
google-analytics = "123456"
additional-css = ["custom.css", "custom2.css"]
additional-js = ["custom.js"]
"""
    got = HtmlConfig.from_value(tomllib.loads(src))
    assert got == HtmlConfig(
        theme=Path("my-theme"),
        curly_quotes=True,
        google_analytics="123456",
        additional_css=[Path("custom.css"), Path("custom2.css")],
        additional_js=[Path("custom.js")],
    )


def test_file_404_default_and_custom():
    assert HtmlConfig.from_value({"destination": "my-book"}).input_404 is None
    got = HtmlConfig.from_value({"input-404": "missing.md", "output-404": "missing.html"})
    assert got.input_404 == "missing.md"


def test_playpen_alias():
    got = HtmlConfig.from_value({"playpen": {"editable": True}})
    assert got.playground.editable is True


def test_playpen_and_playground_together_is_error():
    with pytest.raises(ValueError, match="duplicate"):
        HtmlConfig.from_value({"playpen": {}, "playground": {}})


def test_print_requires_enable():
    with pytest.raises(ValueError, match="enable"):
        HtmlConfig.from_value({"print": {}})
    assert HtmlConfig.from_value({"print": {"enable": False}}).print == Print(enable=False)


def test_search_table_parsed():
    got = HtmlConfig.from_value({"search": {"limit-results": 5, "expand": False}})
    assert got.search == Search(limit_results=5, expand=False)


@pytest.mark.parametrize(
    "value",
    [
        {"curly-quotes": 1},
        {"theme": 3},
        {"additional-css": "a.css"},
        {"fold": {"level": 256}},
        {"fold": {"level": -1}},
        {"search": {"boost-title": True}},
        {"redirect": {"a": 1}},
        {"fold": []},
    ],
)
def test_invalid_types(value):
    with pytest.raises(ValueError):
        HtmlConfig.from_value(value)


def test_non_table_rejected():
    with pytest.raises(ValueError, match="table"):
        Fold.from_value("nope")


def test_to_value_omits_none_and_uses_kebab_case():
    value = HtmlConfig(default_theme="rust").to_value()
    assert value["default-theme"] == "rust"
    assert "theme" not in value
    assert "search" not in value
    assert value["playground"] == {
        "editable": False,
        "copyable": True,
        "copy-js": True,
        "line-numbers": False,
    }
    assert value["print"] == {"enable": True}


def test_round_trip():
    original = HtmlConfig.from_value(tomllib.loads(COMPLEX_HTML))
    original.search = Search(limit_results=7)
    assert HtmlConfig.from_value(original.to_value()) == original


def test_theme_dir():
    root = Path("/book")
    assert HtmlConfig().theme_dir(root) == Path("/book/theme")
    assert HtmlConfig(theme=Path("custom")).theme_dir(root) == Path("/book/custom")
    assert HtmlConfig(theme=Path("/abs/t")).theme_dir(root) == Path("/abs/t")