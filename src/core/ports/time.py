"""
Time Adapter Interface.

Protocol-based interface for reading the current time.
The loop-suppression window is measured against this port so tests
can move time forward deterministically.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    """Time provider interface. All timestamps are UTC."""

    def now_utc(self) -> datetime:
        """Get current UTC time (timezone-aware)."""
        ...
