"""The context handed to preprocessors and the interface they implement."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bookforge.config import Config

__all__ = ["MDBOOK_VERSION", "Preprocessor", "PreprocessorContext"]

MDBOOK_VERSION = "0.4.9"
"""The tool version reported to preprocessors for compatibility checks."""

_REQUIRED_KEYS = ("root", "config", "renderer", "mdbook_version")


@dataclass
class PreprocessorContext:
    """What a preprocessor is told about the book it is processing.

    ``chapter_titles`` collects title overrides found while processing; it is
    never serialized.
    """

    root: Path
    config: Config
    renderer: str
    mdbook_version: str = MDBOOK_VERSION
    chapter_titles: dict[Path, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def to_value(self) -> dict[str, Any]:
        """Return the context as a JSON-ready table."""
        return {
            "root": str(self.root),
            "config": self.config.to_value(),
            "renderer": self.renderer,
            "mdbook_version": self.mdbook_version,
        }

    @classmethod
    def from_value(cls, value: Any) -> PreprocessorContext:
        """Build a context from a table such as :meth:`to_value` produces."""
        if not isinstance(value, Mapping):
            raise ValueError("a preprocessor context must be a table")
        for key in _REQUIRED_KEYS:
            if key not in value:
                raise ValueError(f"missing field `{key}`")
        renderer = value["renderer"]
        version = value["mdbook_version"]
        if not isinstance(renderer, str) or not isinstance(version, str):
            raise ValueError("`renderer` and `mdbook_version` must be strings")
        root = value["root"]
        if not isinstance(root, str):
            raise ValueError("`root` must be a path string")
        return cls(
            root=Path(root),
            config=Config.from_value(value["config"]),
            renderer=renderer,
            mdbook_version=version,
        )


class Preprocessor(ABC):
    """An operation run on a loaded book before it is rendered.

    A book given to :meth:`run` offers ``for_each_mut(callback)``, calling
    ``callback`` on every item; chapters are items with a ``path`` attribute.
    """

    @abstractmethod
    def name(self) -> str:
        """The preprocessor's name."""

    @abstractmethod
    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        """Process ``book`` and return the updated book."""

    def supports_renderer(self, renderer: str) -> bool:
        """Whether this preprocessor should run for ``renderer``; always true by default."""
        return True