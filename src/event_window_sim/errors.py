from __future__ import annotations


class ConfigError(ValueError):
    """Invalid or missing run configuration; raised before any simulation starts."""


class ExportError(OSError):
    """An export destination (CSV, figure) could not be written.

    Already-computed statistics stay valid; only the export step failed.
    """


class SelectionExhausted(RuntimeError):
    """A no-repeat selector ran out of redraw attempts and was told not to accept the repeat."""
