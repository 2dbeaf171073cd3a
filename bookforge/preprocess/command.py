"""A preprocessor that runs an external program.

Support is checked with ``<cmd> supports <renderer>``: exit status 0 means
supported. Preprocessing sends ``[context, book]`` as JSON on the program's
standard input and reads the processed book as JSON from its standard output.
Standard error is passed through to the user.
"""

from __future__ import annotations

import io
import json
import logging
import shlex
import subprocess
from typing import IO, Any

from bookforge.preprocess.context import Preprocessor, PreprocessorContext

__all__ = ["CmdPreprocessor", "PreprocessorError"]

log = logging.getLogger(__name__)


class PreprocessorError(Exception):
    """Raised when a preprocessor cannot be started or fails."""


def _book_value(book: Any) -> Any:
    to_value = getattr(book, "to_value", None)
    return to_value() if callable(to_value) else book


def _book_like(original: Any, value: Any) -> Any:
    from_value = getattr(type(original), "from_value", None)
    return from_value(value) if callable(from_value) else value


class CmdPreprocessor(Preprocessor):
    """A preprocessor which shells out to a third-party program."""

    def __init__(self, name: str, cmd: str) -> None:
        self._name = name
        self.cmd = cmd

    def __repr__(self) -> str:
        return f"CmdPreprocessor(name={self._name!r}, cmd={self.cmd!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CmdPreprocessor):
            return NotImplemented
        return (self._name, self.cmd) == (other._name, other.cmd)

    def __hash__(self) -> int:
        return hash((self._name, self.cmd))

    def name(self) -> str:
        return self._name

    @staticmethod
    def parse_input(reader: IO) -> tuple[PreprocessorContext, Any]:
        """Parse the ``[context, book]`` JSON a preprocessor receives on stdin."""
        try:
            ctx_value, book = json.load(reader)
            return PreprocessorContext.from_value(ctx_value), book
        except (ValueError, TypeError) as e:
            raise PreprocessorError(f"Unable to parse the input: {e}") from e

    def write_input(self, writer: IO[str], book: Any, ctx: PreprocessorContext) -> None:
        """Write ``[context, book]`` as JSON to ``writer``."""
        json.dump([ctx.to_value(), _book_value(book)], writer)

    def _command(self) -> list[str]:
        words = shlex.split(self.cmd)
        if not words:
            raise PreprocessorError("Command string was empty")
        return words

    def run(self, ctx: PreprocessorContext, book: Any) -> Any:
        args = self._command()
        payload = io.StringIO()
        self.write_input(payload, book, ctx)

        try:
            proc = subprocess.Popen(
                args, stdin=subprocess.PIPE, stdout=subprocess.PIPE
            )
        except OSError as e:
            raise PreprocessorError(
                f'Unable to start the "{self._name}" preprocessor. Is it installed?'
            ) from e

        try:
            stdout, _ = proc.communicate(payload.getvalue().encode("utf-8"))
        except BrokenPipeError as e:
            log.warning("Error writing the RenderContext to the backend, %s", e)
            stdout = proc.stdout.read() if proc.stdout else b""
            proc.wait()
        except OSError as e:
            raise PreprocessorError(
                f'Error waiting for the "{self._name}" preprocessor to complete'
            ) from e

        log.debug("%s exited with status %s", self.cmd, proc.returncode)
        if proc.returncode != 0:
            raise PreprocessorError(
                f'The "{self._name}" preprocessor exited unsuccessfully '
                f"with {proc.returncode} status"
            )

        try:
            processed = json.loads(stdout)
        except ValueError as e:
            raise PreprocessorError(
                f'Unable to parse the preprocessed book from "{self._name}" processor'
            ) from e
        return _book_like(book, processed)

    def supports_renderer(self, renderer: str) -> bool:
        log.debug(
            'Checking if the "%s" preprocessor supports "%s"', self._name, renderer
        )
        try:
            args = self._command()
        except (PreprocessorError, ValueError) as e:
            log.warning(
                'Unable to create the command for the "%s" preprocessor, %s',
                self._name,
                e,
            )
            return False

        try:
            result = subprocess.run(
                [*args, "supports", renderer], stdin=subprocess.DEVNULL
            )
        except FileNotFoundError:
            log.warning(
                'The command wasn\'t found, is the "%s" preprocessor installed?',
                self._name,
            )
            log.warning("\tCommand: %s", self.cmd)
            return False
        except OSError:
            return False
        return result.returncode == 0