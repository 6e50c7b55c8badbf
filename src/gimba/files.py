"""Text file output that refuses to overwrite unless told to."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Protocol, Union


class WriteOutcome(Enum):
    """Result of writing one output file."""
    CREATED = "created"
    OVERWRITTEN = "overwritten"
    SKIPPED = "skipped"
    FAILED = "failed"  # only reported by callers that catch write errors


class TextFileSink(Protocol):
    def write(self, path: Union[str, Path], content: str, overwrite: bool) -> WriteOutcome:
        ...


class LocalTextFileSink:
    """Writes text files on the local file system."""

    encoding = "utf-8"

    def write(self, path: Union[str, Path], content: str, overwrite: bool) -> WriteOutcome:
        """Write ``content`` to ``path``.

        An existing file is left untouched unless ``overwrite`` is set.
        ``OSError`` propagates to the caller.
        """
        path = Path(path)
        existed = path.exists()
        if existed and not overwrite:
            return WriteOutcome.SKIPPED
        with path.open("w", encoding=self.encoding, newline="") as fh:
            fh.write(content)
        return WriteOutcome.OVERWRITTEN if existed else WriteOutcome.CREATED


__all__ = ["WriteOutcome", "TextFileSink", "LocalTextFileSink"]
