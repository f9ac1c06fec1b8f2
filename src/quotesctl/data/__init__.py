"""Replay data sources."""

from quotesctl.data.line_source import EmptyFileError, LineSource

__all__ = ["EmptyFileError", "LineSource"]
