"""
Patterns component - Data models.

Key behaviors:
- A compiled matcher is immutable once built
- Captured groups are returned in positional order
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

# --- Enums ---


class PatternType(str, Enum):
    """How a rule's pattern text is interpreted."""

    WILDCARD = "W"
    REGEX = "R"


# --- Errors ---


class PatternCompileError(Exception):
    """Raised when pattern text cannot be turned into a matcher."""

    def __init__(self, code: str, pattern: str, message: str) -> None:
        self.code = code
        self.pattern = pattern
        self.message = message
        super().__init__(f"{message}: {pattern!r}")


# --- Matcher ---


@dataclass(frozen=True)
class CompiledMatcher:
    """Executable matcher built from a rule pattern."""

    source: str
    pattern_type: PatternType
    expression: str  # anchored, e.g. "^http://example\.com/(.*?)$"
    regex: re.Pattern[str] = field(repr=False, compare=False)

    def match(self, url: str) -> tuple[str, ...] | None:
        """
        Match a full URL.

        Returns:
            Captured groups (unmatched optional groups as ""), or None.
        """
        m = self.regex.fullmatch(url)
        if m is None:
            return None
        return tuple(g if g is not None else "" for g in m.groups())

    def matches(self, url: str) -> bool:
        return self.regex.fullmatch(url) is not None
