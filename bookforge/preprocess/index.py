"""A preprocessor turning ``README.md`` chapters into ``index.md``."""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePath
from typing import Any

from bookforge.preprocess.context import Preprocessor, PreprocessorContext

__all__ = ["IndexPreprocessor", "is_readme_file"]

log = logging.getLogger(__name__)

_README = re.compile(r"readme", re.IGNORECASE)


def is_readme_file(path) -> bool:
    """Whether the file stem of ``path`` is ``readme``, in any case."""
    return _README.fullmatch(PurePath(path).stem) is not None


def _warn_readme_name_conflict(readme_path: PurePath, index_path: Path) -> None:
    file_name = readme_path.name
    parent_dir = index_path.parent
    log.warning(
        'It seems that there are both "%s" and index.md under "%s".',
        file_name,
        parent_dir,
    )
    log.warning(
        '"%s" is converted into index.html by default. It may cause', file_name
    )
    log.warning("unexpected behavior if putting both files under the same directory.")
    log.warning("To solve the warning, try to rearrange the book structure or disable")
    log.warning('"index" preprocessor to stop the conversion.')


class IndexPreprocessor(Preprocessor):
    """Renames ``README`` chapters to ``index.md``, the usual index page."""

    NAME = "index"

    def name(self) -> str:
        return self.NAME

    def process_path(self, ctx: PreprocessorContext, path) -> Path:
        """Return the chapter path to use for ``path``, warning on a clash with an existing ``index.md``."""
        path = Path(path)
        if not is_readme_file(path):
            return path
        renamed = path.with_name("index.md")
        index_md = ctx.root / ctx.config.book.src / renamed
        if index_md.exists():
            _warn_readme_name_conflict(path, index_md)
        return renamed

    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        def visit(item: Any) -> None:
            path = getattr(item, "path", None)
            if path is not None:
                item.path = self.process_path(ctx, path)

        book.for_each_mut(visit)
        return book