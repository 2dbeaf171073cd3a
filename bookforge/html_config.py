"""Settings for the HTML renderer, read from and written to TOML-style values."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import MISSING, dataclass, field, fields
from pathlib import Path
from typing import Any, ClassVar


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "table"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _identity(value: Any) -> Any:
    return value


@dataclass(frozen=True)
class _Kind:
    """How one field is checked, converted on load and converted on dump."""

    description: str
    accepts: Callable[[Any], bool]
    parse: Callable[[Any], Any] = _identity
    dump: Callable[[Any], Any] = _identity


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _uint(bits: int) -> _Kind:
    limit = 2**bits
    return _Kind(
        f"an unsigned {bits}-bit integer",
        lambda v: _is_int(v) and 0 <= v < limit,
    )


_BOOL = _Kind("a boolean", lambda v: isinstance(v, bool))
_U8 = _uint(8)
_U32 = _uint(32)
_STR = _Kind("a string", lambda v: isinstance(v, str))
_PATH = _Kind("a path string", lambda v: isinstance(v, str), Path, str)
_PATH_LIST = _Kind(
    "an array of path strings",
    lambda v: isinstance(v, (list, tuple)) and all(isinstance(s, str) for s in v),
    lambda v: [Path(s) for s in v],
    lambda v: [str(p) for p in v],
)
_STR_MAP = _Kind(
    "a table of strings",
    lambda v: isinstance(v, Mapping)
    and all(isinstance(k, str) and isinstance(s, str) for k, s in v.items()),
    dict,
    dict,
)


def _section(cls: type) -> _Kind:
    return _Kind(
        "a table",
        lambda v: isinstance(v, Mapping),
        cls.from_value,
        lambda v: v.to_value(),
    )


def _field(kind: _Kind, default: Any = MISSING, factory: Any = MISSING) -> Any:
    return field(default=default, default_factory=factory, metadata={"kind": kind})


def _parse(kind: _Kind, key: str, value: Any) -> Any:
    if not kind.accepts(value):
        raise ValueError(
            f"invalid type for `{key}`: found {_type_name(value)}, "
            f"expected {kind.description}"
        )
    return kind.parse(value)


class _Section:
    """Shared options for the kebab-case settings tables."""

    _ALIASES: ClassVar[dict[str, str]] = {}
    _REQUIRE_ALL: ClassVar[bool] = False


def _load_section(cls: type, value: Any) -> Any:
    """Build ``cls`` from a table, filling absent keys with defaults."""
    if not isinstance(value, Mapping):
        raise ValueError(f"invalid type: found {_type_name(value)}, expected a table")
    table = dict(value)
    for alias, target in cls._ALIASES.items():
        if alias in table:
            if target in table:
                raise ValueError(f"duplicate field `{target}`")
            table[target] = table.pop(alias)
    kwargs = {}
    for f in fields(cls):
        key = f.name.replace("_", "-")
        if key not in table:
            if cls._REQUIRE_ALL:
                raise ValueError(f"missing field `{key}`")
            continue
        kwargs[f.name] = _parse(f.metadata["kind"], key, table[key])
    return cls(**kwargs)


def _dump_section(section: Any) -> dict[str, Any]:
    """Return the settings as a table with kebab-case keys, leaving out unset options."""
    out: dict[str, Any] = {}
    for f in fields(section):
        current = getattr(section, f.name)
        if current is None:
            continue
        out[f.name.replace("_", "-")] = f.metadata["kind"].dump(current)
    return out


@dataclass
class Print(_Section):
    """Whether the print page and icon are produced."""

    _REQUIRE_ALL = True

    enable: bool = _field(_BOOL, True)

    @classmethod
    def from_value(cls, value):
        """Build the settings from a table; every key is required."""
        return _load_section(cls, value)

    def to_value(self) -> dict[str, Any]:
        """Return the settings as a table."""
        return _dump_section(self)


@dataclass
class Fold(_Section):
    """How sidebar chapters are folded."""

    enable: bool = _field(_BOOL, False)
    level: int = _field(_U8, 0)

    @classmethod
    def from_value(cls, value):
        """Build the settings from a table, filling absent keys with defaults."""
        return _load_section(cls, value)

    def to_value(self) -> dict[str, Any]:
        """Return the settings as a table."""
        return _dump_section(self)


@dataclass
class Playground(_Section):
    """How runnable code snippets are presented."""

    editable: bool = _field(_BOOL, False)
    copyable: bool = _field(_BOOL, True)
    copy_js: bool = _field(_BOOL, True)
    line_numbers: bool = _field(_BOOL, False)

    @classmethod
    def from_value(cls, value):
        """Build the settings from a table, filling absent keys with defaults."""
        return _load_section(cls, value)

    def to_value(self) -> dict[str, Any]:
        """Return the settings as a table."""
        return _dump_section(self)


@dataclass
class Search(_Section):
    """Settings for the search feature."""

    enable: bool = _field(_BOOL, True)
    limit_results: int = _field(_U32, 30)
    teaser_word_count: int = _field(_U32, 30)
    use_boolean_and: bool = _field(_BOOL, False)
    boost_title: int = _field(_U8, 2)
    boost_hierarchy: int = _field(_U8, 1)
    boost_paragraph: int = _field(_U8, 1)
    expand: bool = _field(_BOOL, True)
    heading_split_level: int = _field(_U8, 3)
    copy_js: bool = _field(_BOOL, True)

    @classmethod
    def from_value(cls, value):
        """Build the settings from a table, filling absent keys with defaults."""
        return _load_section(cls, value)

    def to_value(self) -> dict[str, Any]:
        """Return the settings as a table."""
        return _dump_section(self)


@dataclass
class HtmlConfig(_Section):
    """Settings for the HTML renderer."""

    _ALIASES = {"playpen": "playground"}

    theme: Path | None = _field(_PATH, None)
    default_theme: str | None = _field(_STR, None)
    preferred_dark_theme: str | None = _field(_STR, None)
    curly_quotes: bool = _field(_BOOL, False)
    mathjax_support: bool = _field(_BOOL, False)
    copy_fonts: bool = _field(_BOOL, True)
    google_analytics: str | None = _field(_STR, None)
    additional_css: list[Path] = _field(_PATH_LIST, factory=list)
    additional_js: list[Path] = _field(_PATH_LIST, factory=list)
    fold: Fold = _field(_section(Fold), factory=Fold)
    playground: Playground = _field(_section(Playground), factory=Playground)
    print: Print = _field(_section(Print), factory=Print)
    no_section_label: bool = _field(_BOOL, False)
    search: Search | None = _field(_section(Search), None)
    git_repository_url: str | None = _field(_STR, None)
    git_repository_icon: str | None = _field(_STR, None)
    input_404: str | None = _field(_STR, None)
    site_url: str | None = _field(_STR, None)
    cname: str | None = _field(_STR, None)
    edit_url_template: str | None = _field(_STR, None)
    livereload_url: str | None = _field(_STR, None)
    redirect: dict[str, str] = _field(_STR_MAP, factory=dict)

    @classmethod
    def from_value(cls, value):
        """Build the settings from a table; ``playpen`` is read as ``playground``."""
        return _load_section(cls, value)

    def to_value(self) -> dict[str, Any]:
        """Return the settings as a table, leaving out unset options."""
        return _dump_section(self)

    def theme_dir(self, root) -> Path:
        """The theme directory under ``root``, ``theme`` when none is configured."""
        root = Path(root)
        return root / self.theme if self.theme is not None else root / "theme"