"""Replay file reader.

Loads a CSV / semicolon / space separated file up front and hands out its
normalized lines in order, each exactly once.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class EmptyFileError(ValueError):
    """Raised when a replay file has no non-blank lines."""


def normalize_line(line: str) -> str:
    """Treat ',' and ';' as separators and collapse whitespace to single spaces."""
    return " ".join(line.replace(",", " ").replace(";", " ").split())


class LineSource:
    """
    Sequential reader over a replay file.

    The cursor only moves forward; once a line is handed out it is never
    returned again.
    """

    def __init__(self, lines: list[str], path: str | Path = "<memory>") -> None:
        self.path = str(path)
        self._lines = lines
        self._pos = 0

    @classmethod
    def open(cls, path: str | Path) -> LineSource:
        """
        Read and normalize a replay file.

        Raises:
            OSError: If the file cannot be read.
            EmptyFileError: If no non-blank lines remain.
        """
        content = Path(path).read_text(encoding="utf-8")
        lines = [normalize_line(raw) for raw in content.splitlines() if raw.strip()]
        if not lines:
            raise EmptyFileError(f"file is empty: {path}")

        logger.info(f"Loaded {len(lines)} lines from {path}")
        return cls(lines, path)

    @property
    def total(self) -> int:
        return len(self._lines)

    @property
    def position(self) -> int:
        return self._pos

    def remaining(self) -> int:
        return len(self._lines) - self._pos

    def done(self) -> bool:
        return self._pos >= len(self._lines)

    def next_line(self) -> str | None:
        """Next line, or None once exhausted."""
        if self.done():
            return None
        line = self._lines[self._pos]
        self._pos += 1
        return line

    def next_batch(self, n: int) -> list[str]:
        """Up to ``n`` lines; fewer at end of input, empty once exhausted."""
        if self.done() or n <= 0:
            return []
        end = min(self._pos + n, len(self._lines))
        batch = self._lines[self._pos : end]
        self._pos = end
        return batch
