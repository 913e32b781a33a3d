"""
Engine component input/output models.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from src.components.partition import EMPTY_PARTITIONS, PartitionedRuleSet
from src.components.redirects import (
    HISTORY,
    MAIN_FRAME,
    ExamplePreview,
    MatchResult,
    RedirectRule,
    RuleValidationError,
)
from src.components.static_rules import StaticRuleDescriptor

# --- Requests ---


@dataclass(frozen=True)
class EvaluationRequest:
    """One navigation or resource request to check."""

    url: str
    request_kind: str = MAIN_FRAME
    frame_is_top_level: bool = True


# --- Snapshot ---


@dataclass(frozen=True)
class EngineSnapshot:
    """Everything built from one rule list; replaced as a whole."""

    rules: tuple[RedirectRule, ...] = ()
    partitions: PartitionedRuleSet = field(default_factory=lambda: EMPTY_PARTITIONS)
    static_rules: tuple[StaticRuleDescriptor, ...] = ()
    request_filter: tuple[str, ...] = ()
    # positions of rules the registry currently enforces
    registered_positions: frozenset[int] = frozenset()

    @property
    def active_rules(self) -> tuple[RedirectRule, ...]:
        return tuple(r for r in self.rules if not r.disabled)

    @property
    def has_placeholder_rules(self) -> bool:
        """Any enabled network rule needing per-request evaluation."""
        return any(
            r.has_placeholders and any(k != HISTORY for k in r.applies_to)
            for r in self.active_rules
        )

    @property
    def has_history_rules(self) -> bool:
        return bool(self.partitions.rules_for(HISTORY))


EMPTY_SNAPSHOT = EngineSnapshot()


# --- Load Report ---


@dataclass(frozen=True)
class RecordError:
    """A rule record that was left out of the active set."""

    position: int
    description: str
    errors: tuple[RuleValidationError, ...]

    def as_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "description": self.description,
            "errors": [{"code": e.code, "message": e.message, "field": e.field} for e in self.errors],
        }


@dataclass(frozen=True)
class LoadReport:
    """Result of replacing the rule list."""

    accepted: int
    rejected: tuple[RecordError, ...] = ()
    # invalid records that are switched off; reported, not counted as failures
    skipped: tuple[RecordError, ...] = ()
    static_rules: int = 0
    static_registered: bool = False

    @property
    def success(self) -> bool:
        return not self.rejected


# --- Component Inputs ---


@dataclass(frozen=True)
class LoadRulesInput:
    """Input for replacing the rule list."""

    records: Sequence[Any]


@dataclass(frozen=True)
class EvaluateInput:
    """Input for evaluating one request."""

    url: str
    request_kind: str = MAIN_FRAME
    frame_is_top_level: bool = True


@dataclass(frozen=True)
class PreviewInput:
    """Input for checking one record against its example URL."""

    record: Any
    example_url: str | None = None  # defaults to the record's exampleUrl


# --- Component Outputs ---


@dataclass(frozen=True)
class LoadRulesOutput:
    """Output for rule list replacement."""

    report: LoadReport
    errors: list[RecordError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class EvaluateOutput:
    """Output for a single evaluation."""

    result: MatchResult
    success: bool = True


@dataclass(frozen=True)
class PreviewOutput:
    """Output for a record preview."""

    preview: ExamplePreview | None
    errors: list[RuleValidationError] = field(default_factory=list)
    success: bool = True
