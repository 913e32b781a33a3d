"""
LoopGuard - Short-lived suppression of just-produced redirect targets.

Key behaviors:
- A recorded destination suppresses the next request for that exact URL once
- Suppression entries older than the window are stale and ignored
- Repeated redirects to one destination inside the window are counted;
  past the threshold the destination is blocked until the window lapses
- Expiry is checked on access; sweep() prunes everything stale
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from src.core.ports.diagnostics import Diagnostic, DiagnosticCode, DiagnosticSink, Severity
from src.core.ports.time import TimePort

logger = logging.getLogger(__name__)

# --- Configuration ---


@dataclass(frozen=True)
class LoopGuardConfig:
    """Loop guard configuration."""

    window_seconds: float = 3.0
    threshold: int = 3  # redirects allowed per destination per window


DEFAULT_CONFIG = LoopGuardConfig()


# --- Entries ---


@dataclass(frozen=True)
class LoopEntry:
    """Redirect streak for one destination."""

    first_at: datetime
    count: int = 1


# --- Guard ---


class LoopGuard:
    """
    Loop-suppression cache.

    Holds two maps: URLs to ignore once (keyed by destination, valued by
    the time they were produced) and per-destination redirect streaks.
    """

    def __init__(
        self,
        time_port: TimePort | None = None,
        config: LoopGuardConfig | None = None,
        sink: DiagnosticSink | None = None,
    ) -> None:
        """Initialize guard."""
        self._time_port = time_port
        self._config = config or DEFAULT_CONFIG
        self._sink = sink
        self._ignore_next: dict[str, datetime] = {}
        self._streaks: dict[str, LoopEntry] = {}

    @property
    def config(self) -> LoopGuardConfig:
        return self._config

    def _now(self) -> datetime:
        if self._time_port:
            return self._time_port.now_utc()
        return datetime.now(UTC)

    def _expired(self, since: datetime, now: datetime) -> bool:
        return now - since > timedelta(seconds=self._config.window_seconds)

    def should_suppress(self, url: str) -> bool:
        """
        Check whether a request for this URL should skip evaluation.

        Consumes the entry: the same URL is only suppressed once.
        """
        recorded_at = self._ignore_next.pop(url, None)
        if recorded_at is None:
            return False

        if self._expired(recorded_at, self._now()):
            return False

        logger.debug("Ignoring %s, was just redirected to", url)
        return True

    def record_redirect(self, destination: str) -> bool:
        """
        Record a redirect about to be made to ``destination``.

        Returns:
            True if the redirect may proceed, False if the destination
            has exceeded the loop threshold inside the current window.
        """
        now = self._now()
        entry = self._streaks.get(destination)

        if entry is None or self._expired(entry.first_at, now):
            entry = LoopEntry(first_at=now)
        else:
            entry = LoopEntry(first_at=entry.first_at, count=entry.count + 1)
        self._streaks[destination] = entry

        if entry.count > self._config.threshold:
            self._ignore_next.pop(destination, None)
            if entry.count == self._config.threshold + 1:
                self._report_loop(destination, entry)
            else:
                logger.debug("Redirect to %s still blocked (count=%d)", destination, entry.count)
            return False

        self._ignore_next[destination] = now
        return True

    def is_blocked(self, destination: str) -> bool:
        """Check if redirects to ``destination`` are currently blocked."""
        entry = self._streaks.get(destination)
        if entry is None:
            return False
        if self._expired(entry.first_at, self._now()):
            return False
        return entry.count > self._config.threshold

    def redirect_count(self, destination: str) -> int:
        """Redirects to ``destination`` in the current window."""
        entry = self._streaks.get(destination)
        if entry is None or self._expired(entry.first_at, self._now()):
            return 0
        return entry.count

    def sweep(self) -> int:
        """Remove stale entries. Returns count removed."""
        now = self._now()
        stale_ignores = [u for u, at in self._ignore_next.items() if self._expired(at, now)]
        stale_streaks = [u for u, e in self._streaks.items() if self._expired(e.first_at, now)]

        for url in stale_ignores:
            del self._ignore_next[url]
        for url in stale_streaks:
            del self._streaks[url]

        return len(stale_ignores) + len(stale_streaks)

    def clear(self) -> None:
        """Forget everything."""
        self._ignore_next.clear()
        self._streaks.clear()

    def _report_loop(self, destination: str, entry: LoopEntry) -> None:
        message = (
            f"Redirect loop detected: {entry.count} redirects to the same URL within "
            f"{self._config.window_seconds:g}s, not redirecting until the window expires"
        )
        if self._sink is None:
            logger.warning("%s (%s)", message, destination)
        else:
            self._sink.emit(
                Diagnostic(
                    code=DiagnosticCode.LOOP_THRESHOLD_EXCEEDED,
                    message=message,
                    severity=Severity.WARNING,
                    url=destination,
                    details={"count": entry.count, "threshold": self._config.threshold},
                )
            )


# --- Factory ---


def create_loop_guard(
    time_port: TimePort | None = None,
    window_seconds: float = DEFAULT_CONFIG.window_seconds,
    threshold: int = DEFAULT_CONFIG.threshold,
    sink: DiagnosticSink | None = None,
) -> LoopGuard:
    """Create a LoopGuard."""
    return LoopGuard(
        time_port=time_port,
        config=LoopGuardConfig(window_seconds=window_seconds, threshold=threshold),
        sink=sink,
    )
