"""
Diagnostics Interface.

Protocol-based sink for structured engine diagnostics.
The engine never prints; every compile failure, loop warning or
template problem is delivered to a sink as a Diagnostic.

Implementation strategies:
1. LoggingDiagnosticSink: Writes to the logging module (default)
2. RecordingDiagnosticSink: Keeps diagnostics in memory (tests, API reports)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class DiagnosticCode(str, Enum):
    """Diagnostic taxonomy."""

    INVALID_PATTERN = "invalid_pattern"
    MALFORMED_RULE = "malformed_rule"
    LOOP_THRESHOLD_EXCEEDED = "loop_threshold_exceeded"
    SUBSTITUTION_OUT_OF_RANGE = "substitution_out_of_range"


class Severity(str, Enum):
    """How loudly a diagnostic should be reported."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    """A structured, non-fatal engine event."""

    code: DiagnosticCode
    message: str
    severity: Severity = Severity.WARNING
    rule: str | None = None  # rule description
    url: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "severity": self.severity.value,
            "rule": self.rule,
            "url": self.url,
            "details": dict(self.details),
        }


class DiagnosticSink(Protocol):
    """Receiver of engine diagnostics."""

    def emit(self, diagnostic: Diagnostic) -> None:
        """Deliver one diagnostic."""
        ...
