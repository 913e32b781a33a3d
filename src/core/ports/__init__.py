# redirector-engine: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.diagnostics import (
    Diagnostic,
    DiagnosticCode,
    DiagnosticSink,
    Severity,
)
from src.core.ports.time import TimePort

__all__ = [
    # Diagnostics
    "Diagnostic",
    "DiagnosticCode",
    "DiagnosticSink",
    "Severity",
    # Time
    "TimePort",
]
