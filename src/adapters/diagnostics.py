"""
Diagnostic Sink Adapters.

Key behaviors:
- LoggingDiagnosticSink maps severity to a logging level and attaches
  the structured fields via ``extra``
- RecordingDiagnosticSink keeps diagnostics in memory and optionally
  forwards them to another sink
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from src.core.ports.diagnostics import (
    Diagnostic,
    DiagnosticCode,
    DiagnosticSink,
    Severity,
)

logger = logging.getLogger(__name__)

_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class LoggingDiagnosticSink:
    """Writes diagnostics to the logging module."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def emit(self, diagnostic: Diagnostic) -> None:
        parts = [f"[{diagnostic.code.value}] {diagnostic.message}"]
        if diagnostic.rule:
            parts.append(f"rule={diagnostic.rule!r}")
        if diagnostic.url:
            parts.append(f"url={diagnostic.url}")

        self._log.log(
            _LEVELS[diagnostic.severity],
            ", ".join(parts),
            extra={"diagnostic": diagnostic.as_dict()},
        )


@dataclass
class RecordingDiagnosticSink:
    """In-memory sink for tests and load reports."""

    diagnostics: list[Diagnostic] = field(default_factory=list)
    forward_to: DiagnosticSink | None = None

    def emit(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)
        if self.forward_to is not None:
            self.forward_to.emit(diagnostic)

    def with_code(self, code: DiagnosticCode) -> list[Diagnostic]:
        """Get all recorded diagnostics with the given code."""
        return [d for d in self.diagnostics if d.code == code]

    def clear(self) -> None:
        """Clear recorded diagnostics (for test isolation)."""
        self.diagnostics.clear()
