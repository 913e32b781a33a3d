"""
Redirects component models.

Invariants:
- A rule always has at least one request kind
- A rule's include matcher is always compiled; the exclude matcher is optional
- A rule with a "$" in its template is only ever evaluated per request
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from src.components.patterns import CompiledMatcher, PatternType

# --- Request Kinds ---

HISTORY = "history"
MAIN_FRAME = "main_frame"

NETWORK_REQUEST_KINDS: tuple[str, ...] = (
    "main_frame",
    "sub_frame",
    "stylesheet",
    "script",
    "image",
    "font",
    "object",
    "xmlhttprequest",
    "ping",
    "csp_report",
    "media",
    "websocket",
    "webtransport",
    "webbundle",
    "other",
)

REQUEST_KINDS = frozenset(NETWORK_REQUEST_KINDS) | {HISTORY}

# Kinds fired by top-level navigation; sub-frame events of these kinds are ignored.
NAVIGATION_KINDS = frozenset({MAIN_FRAME, HISTORY})

PLACEHOLDER_CHAR = "$"


# --- Enums ---


class ProcessMatches(str, Enum):
    """Transform applied to each capture before substitution."""

    NO_PROCESSING = "noProcessing"
    URL_ENCODE = "urlEncode"
    URL_DECODE = "urlDecode"
    DOUBLE_URL_DECODE = "doubleUrlDecode"
    BASE64_DECODE = "base64decode"


# --- Validation Errors ---


@dataclass(frozen=True)
class RuleValidationError:
    """Rule validation error."""

    code: str  # "invalid_pattern" or "malformed_rule"
    message: str
    field: str | None = None


class InvalidRuleError(Exception):
    """Raised when a rule record cannot become an active rule."""

    def __init__(self, errors: list[RuleValidationError], description: str = "") -> None:
        self.errors = errors
        self.description = description
        super().__init__(f"Invalid rule {description!r}: {'; '.join(e.message for e in errors)}")

    @property
    def codes(self) -> set[str]:
        return {e.code for e in self.errors}


# --- Rule ---


@dataclass(frozen=True)
class RedirectRule:
    """A validated, compiled redirect rule."""

    description: str
    include: CompiledMatcher
    redirect_template: str
    applies_to: tuple[str, ...]
    exclude: CompiledMatcher | None = None
    pattern_type: PatternType = PatternType.WILDCARD
    process_matches: ProcessMatches = ProcessMatches.NO_PROCESSING
    disabled: bool = False
    position: int = 0  # index in the authored list

    @property
    def include_pattern(self) -> str:
        return self.include.source

    @property
    def exclude_pattern(self) -> str:
        return self.exclude.source if self.exclude else ""

    @property
    def has_placeholders(self) -> bool:
        """True when the destination depends on captured text."""
        return PLACEHOLDER_CHAR in self.redirect_template

    @property
    def applies_to_history(self) -> bool:
        return HISTORY in self.applies_to


# --- Results ---


@dataclass(frozen=True)
class MatchResult:
    """Outcome of evaluating a URL."""

    is_match: bool
    redirect_to: str | None = None
    is_excluded: bool = False
    suppressed: bool = False  # skipped because the URL was just produced
    loop_detected: bool = False  # destination hit the loop threshold
    missing_groups: tuple[int, ...] = ()
    rule: RedirectRule | None = field(default=None, compare=False)


NO_MATCH = MatchResult(is_match=False)


@dataclass(frozen=True)
class ExamplePreview:
    """What a rule does to its example URL."""

    result: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
