"""The book configuration, an in-memory form of ``book.toml``.

A :class:`Config` holds three fixed tables (``book``, ``build`` and ``rust``)
plus any other data, which is kept as plain TOML values for renderers and
preprocessors to read.
"""

from __future__ import annotations

import copy
import datetime
import json
import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePath
from typing import Any

import tomli_w

from bookforge.html_config import (
    _BOOL,
    _PATH,
    _STR,
    HtmlConfig,
    _dump_section,
    _field,
    _Kind,
    _load_section,
    _Section,
)

__all__ = [
    "BookConfig",
    "BuildConfig",
    "Config",
    "ConfigError",
    "RustConfig",
    "RustEdition",
    "parse_env",
]

log = logging.getLogger(__name__)

_ENV_PREFIX = "MDBOOK_"
_LEGACY_ITEMS = (
    "title",
    "authors",
    "source",
    "description",
    "output.html.destination",
)


class ConfigError(Exception):
    """Raised when a configuration cannot be read, parsed or represented."""


class RustEdition(Enum):
    """Language edition used for code snippets."""

    E2018 = "2018"
    E2015 = "2015"


_EDITIONS = frozenset(edition.value for edition in RustEdition)

_STR_LIST = _Kind(
    "an array of strings",
    lambda v: isinstance(v, (list, tuple)) and all(isinstance(s, str) for s in v),
    list,
    list,
)
_EDITION = _Kind(
    "one of `2018`, `2015`",
    lambda v: isinstance(v, str) and v in _EDITIONS,
    RustEdition,
    lambda e: e.value,
)


@dataclass
class BookConfig(_Section):
    """Metadata about the book and where its sources live."""

    title: str | None = _field(_STR, None)
    authors: list[str] = _field(_STR_LIST, factory=list)
    description: str | None = _field(_STR, None)
    src: Path = _field(_PATH, Path("src"))
    multilingual: bool = _field(_BOOL, False)
    language: str | None = _field(_STR, "en")

    @classmethod
    def from_value(cls, value):
        """Build the settings from a table, filling absent keys with defaults."""
        return _load_section(cls, value)

    def to_value(self) -> dict[str, Any]:
        """Return the settings as a table, leaving out unset options."""
        return _dump_section(self)


@dataclass
class BuildConfig(_Section):
    """Settings for the build procedure."""

    build_dir: Path = _field(_PATH, Path("book"))
    create_missing: bool = _field(_BOOL, True)
    use_default_preprocessors: bool = _field(_BOOL, True)

    @classmethod
    def from_value(cls, value):
        """Build the settings from a table, filling absent keys with defaults."""
        return _load_section(cls, value)

    def to_value(self) -> dict[str, Any]:
        """Return the settings as a table."""
        return _dump_section(self)


@dataclass
class RustConfig(_Section):
    """Settings for code snippets, such as the edition to use."""

    edition: RustEdition | None = _field(_EDITION, None)

    @classmethod
    def from_value(cls, value):
        """Build the settings from a table, filling absent keys with defaults."""
        return _load_section(cls, value)

    def to_value(self) -> dict[str, Any]:
        """Return the settings as a table, leaving out unset options."""
        return _dump_section(self)


def parse_env(key: str) -> str | None:
    """Turn an ``MDBOOK_`` environment variable name into a dotted config key."""
    if not key.startswith(_ENV_PREFIX):
        return None
    return key[len(_ENV_PREFIX):].lower().replace("__", ".").replace("_", "-")


def _read(table: Any, key: str) -> Any:
    current = table
    for part in key.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _insert(table: dict, key: str, value: Any) -> None:
    *parents, last = key.split(".")
    for part in parents:
        child = table.get(part)
        if not isinstance(child, dict):
            child = {}
            table[part] = child
        table = child
    table[last] = value


def _delete(table: dict, key: str) -> Any:
    *parents, last = key.split(".")
    for part in parents:
        table = table.get(part)
        if not isinstance(table, dict):
            return None
    return table.pop(last, None)


def _to_toml(value: Any) -> Any:
    """Convert ``value`` to a TOML-representable value, copying containers."""
    if isinstance(value, Enum):
        return _to_toml(value.value)
    if isinstance(value, (bool, int, float, str, datetime.date, datetime.time)):
        return value
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, Mapping):
        out = {}
        for k, v in value.items():
            if not isinstance(k, (str, PurePath)):
                raise ConfigError(
                    f"Unable to represent the item as a TOML value: key {k!r}"
                )
            out[str(k)] = _to_toml(v)
        return out
    if isinstance(value, (list, tuple)):
        return [_to_toml(v) for v in value]
    to_value = getattr(value, "to_value", None)
    if callable(to_value):
        return _to_toml(to_value())
    raise ConfigError(f"Unable to represent the item as a TOML value: {value!r}")


def _sorted(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _sorted(value[k]) for k in sorted(value)}
    if isinstance(value, list):
        return [_sorted(v) for v in value]
    return value


def _update_section(section: Any, key: str, value: Any) -> Any:
    """Return ``section`` with ``key`` set, or unchanged if the result is invalid."""
    raw = section.to_value()
    _insert(raw, key, value)
    try:
        return type(section).from_value(raw)
    except ValueError:
        return section


def _is_legacy_format(raw: Any) -> bool:
    return any(_read(raw, item) is not None for item in _LEGACY_ITEMS)


@dataclass
class Config:
    """The whole book configuration."""

    book: BookConfig = field(default_factory=BookConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    rust: RustConfig = field(default_factory=RustConfig)
    rest: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_str(cls, src: str) -> Config:
        """Parse a configuration from TOML text."""
        try:
            raw = tomllib.loads(src)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid configuration file: {e}") from e
        try:
            return cls.from_value(raw)
        except ConfigError as e:
            raise ConfigError(f"Invalid configuration file: {e}") from e

    @classmethod
    def from_disk(cls, config_file) -> Config:
        """Load the configuration from a TOML file."""
        try:
            data = Path(config_file).read_bytes()
        except OSError as e:
            raise ConfigError("Unable to open the configuration file") from e
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ConfigError("Couldn't read the file") from e
        return cls.from_str(text)

    @classmethod
    def from_value(cls, value: Any) -> Config:
        """Build a configuration from an already parsed TOML table."""
        if _is_legacy_format(value):
            log.warning("It looks like you are using the legacy book.toml format.")
            log.warning(
                "Move top level entries like `title`, `authors` and `description` "
                "under a `[book]` table, and `destination` from `[output.html]` "
                "to `build-dir` under a `[build]` table."
            )
            return cls._from_legacy(value)

        if not isinstance(value, Mapping):
            raise ConfigError("A config file should always be a toml table")

        table = copy.deepcopy(dict(value))
        sections = {}
        for name, section_cls in (
            ("book", BookConfig),
            ("build", BuildConfig),
            ("rust", RustConfig),
        ):
            if name in table:
                try:
                    sections[name] = section_cls.from_value(table.pop(name))
                except ValueError as e:
                    raise ConfigError(f"[{name}]: {e}") from e
            else:
                sections[name] = section_cls()
        return cls(rest=table, **sections)

    @classmethod
    def _from_legacy(cls, value: Mapping) -> Config:
        table = copy.deepcopy(dict(value))
        cfg = cls()
        for key, attr, kind in (
            ("title", "title", _STR),
            ("authors", "authors", _STR_LIST),
            ("source", "src", _PATH),
            ("description", "description", _STR),
        ):
            if key in table:
                got = table.pop(key)
                if kind.accepts(got):
                    setattr(cfg.book, attr, kind.parse(got))

        destination = _delete(table, "output.html.destination")
        if isinstance(destination, str):
            cfg.build.build_dir = Path(destination)

        cfg.rest = table
        return cfg

    def to_value(self) -> dict[str, Any]:
        """Return the configuration as a TOML table with sorted keys."""
        table = copy.deepcopy(self.rest)
        table["book"] = self.book.to_value()
        if self.build != BuildConfig():
            table["build"] = self.build.to_value()
        if self.rust != RustConfig():
            table["rust"] = self.rust.to_value()
        return _sorted(table)

    def to_toml(self) -> str:
        """Return the configuration as TOML text."""
        return tomli_w.dumps(self.to_value())

    def update_from_env(self, environ: Mapping[str, str] | None = None) -> None:
        """Apply overrides from ``MDBOOK_`` variables in ``environ`` (default: the process environment).

        Values are parsed as JSON where possible, otherwise taken as strings.
        A JSON object given for ``book`` or ``build`` sets each of its entries
        and ends the update.
        """
        log.debug("Updating the config from environment variables")
        if environ is None:
            environ = os.environ

        for raw_key, raw_value in list(environ.items()):
            key = parse_env(raw_key)
            if key is None:
                continue
            log.debug("%s => %s", key, raw_value)
            try:
                parsed = json.loads(raw_value)
            except ValueError:
                parsed = raw_value

            if key in ("book", "build") and isinstance(parsed, dict):
                for k, v in parsed.items():
                    self.set(f"{key}.{k}", v)
                return

            self.set(key, parsed)

    def get(self, key: str) -> Any:
        """Fetch a value from the free-form tables by dotted key, or ``None``.

        The returned containers are the stored ones, so they may be changed in place.
        """
        return _read(self.rest, key)

    def set(self, index: str, value: Any) -> None:
        """Set a value by dotted key, replacing whatever lies along the way.

        Keys under ``book.`` and ``build.`` update those sections; a value they
        cannot hold is silently ignored.
        """
        value = _to_toml(value)
        if index.startswith("book."):
            self.book = _update_section(self.book, index[len("book."):], value)
        elif index.startswith("build."):
            self.build = _update_section(self.build, index[len("build."):], value)
        else:
            _insert(self.rest, index, value)

    def html_config(self) -> HtmlConfig | None:
        """The ``[output.html]`` settings, or ``None`` if absent or invalid."""
        raw = self.get("output.html")
        if raw is None:
            return None
        try:
            return HtmlConfig.from_value(raw)
        except ValueError as e:
            log.error("Parsing configuration [output.html]: %s", e)
            return None

    def get_renderer(self, index: str) -> dict | None:
        """The table configuring the named renderer, if any."""
        got = self.get(f"output.{index}")
        return got if isinstance(got, dict) else None

    def get_preprocessor(self, index: str) -> dict | None:
        """The table configuring the named preprocessor, if any."""
        got = self.get(f"preprocessor.{index}")
        return got if isinstance(got, dict) else None