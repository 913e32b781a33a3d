"""
RedirectEngine - Rule set lifecycle and per-request dispatch.

Builds every derived structure (rules, partitions, static descriptors)
off to the side from a rule list and publishes them as one immutable
snapshot, then answers evaluation requests against the current snapshot.

Key behaviors:
- Bad records are reported and skipped; the rest of the list still loads
- Bad records that are switched off are reported but do not fail the load
- A rebuild is all or nothing: evaluations see the old or the new snapshot
- Static descriptors are registered with remove-all-then-add-all
- Network requests skip only the rules the registry actually enforces;
  rules it could not take (unsupported syntax, refused update, no
  registry) are evaluated per request; history events evaluate every
  history rule
- A refused registry update clears the registered set so rules from an
  earlier list are never enforced next to the current one
- First matching rule in author order wins
- Just-produced destinations are suppressed once; repeated redirects to
  one destination are stopped past the loop threshold
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from typing import Any

from src.adapters.diagnostics import LoggingDiagnosticSink
from src.components.loop_guard import LoopGuard, LoopGuardConfig
from src.components.partition import build_partitions, request_filter
from src.components.redirects import (
    HISTORY,
    NAVIGATION_KINDS,
    NO_MATCH,
    InvalidRuleError,
    MatchResult,
    RedirectRule,
    build_rule,
)
from src.components.redirects import evaluate as evaluate_rule
from src.components.static_rules import (
    RegistrationError,
    StaticRuleDescriptor,
    StaticRuleRegistryPort,
    clear_static_rules,
    compile_static,
    sync_static_rules,
)
from src.core.ports.diagnostics import Diagnostic, DiagnosticCode, DiagnosticSink, Severity
from src.core.ports.time import TimePort
from src.rules.models import EXAMPLE_RULE, EngineRules

from .models import (
    EMPTY_SNAPSHOT,
    EngineSnapshot,
    EvaluationRequest,
    LoadReport,
    RecordError,
)

logger = logging.getLogger(__name__)


class RedirectEngine:
    """
    Redirect rule engine.

    Owns the current snapshot (single writer) and the loop guard.
    """

    def __init__(
        self,
        registry: StaticRuleRegistryPort | None = None,
        loop_guard: LoopGuard | None = None,
        sink: DiagnosticSink | None = None,
        static_enabled: bool = True,
        static_priority: int = 1,
        enabled: bool = True,
    ) -> None:
        """Initialize engine with an empty rule set."""
        self._registry = registry
        self._sink = sink or LoggingDiagnosticSink()
        self._guard = loop_guard or LoopGuard(sink=self._sink)
        self._static_enabled = static_enabled
        self._static_priority = static_priority
        self._enabled = enabled
        self._snapshot: EngineSnapshot = EMPTY_SNAPSHOT

    # --- State ---

    @property
    def snapshot(self) -> EngineSnapshot:
        return self._snapshot

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def loop_guard(self) -> LoopGuard:
        return self._guard

    @property
    def request_filter(self) -> tuple[str, ...]:
        return self._snapshot.request_filter

    @property
    def has_placeholder_rules(self) -> bool:
        return self._snapshot.has_placeholder_rules

    @property
    def has_history_rules(self) -> bool:
        return self._snapshot.has_history_rules

    # --- Rebuild ---

    def _build_rules(
        self, records: Iterable[Any]
    ) -> tuple[list[RedirectRule], list[RecordError], list[RecordError]]:
        rules: list[RedirectRule] = []
        rejected: list[RecordError] = []
        skipped: list[RecordError] = []

        for position, raw in enumerate(records):
            try:
                rules.append(build_rule(raw, position))
            except InvalidRuleError as e:
                error = RecordError(position, e.description, tuple(e.errors))
                disabled = _is_disabled(raw)
                (skipped if disabled else rejected).append(error)
                code = (
                    DiagnosticCode.INVALID_PATTERN
                    if "invalid_pattern" in e.codes
                    else DiagnosticCode.MALFORMED_RULE
                )
                self._sink.emit(
                    Diagnostic(
                        code=code,
                        message="; ".join(err.message for err in e.errors),
                        severity=Severity.WARNING if disabled else Severity.ERROR,
                        rule=e.description,
                        details={"position": position, "disabled": disabled},
                    )
                )

        return rules, rejected, skipped

    def _register(self, descriptors: Sequence[StaticRuleDescriptor]) -> frozenset[int]:
        """Sync descriptors into the registry; return the rule positions now enforced there."""
        if self._registry is None:
            return frozenset()
        try:
            sync_static_rules(self._registry, descriptors)
        except RegistrationError as e:
            logger.error("Error updating static rules: %s", e)
            self._clear_registry()
            return frozenset()
        return frozenset(d.rule_position for d in descriptors)

    def _clear_registry(self) -> None:
        if self._registry is None:
            return
        try:
            clear_static_rules(self._registry)
        except RegistrationError as e:
            logger.error("Error removing static rules: %s", e)

    def load(self, records: Iterable[Any]) -> LoadReport:
        """
        Replace the rule list.

        Every derived structure is rebuilt from scratch and published
        with a single reference swap.
        """
        rules, rejected, skipped = self._build_rules(records)
        partitions = build_partitions(rules, self._sink)
        descriptors: tuple[StaticRuleDescriptor, ...] = ()
        if self._static_enabled:
            descriptors = compile_static(rules, self._static_priority, self._sink)

        registered = self._register(descriptors) if self._enabled else frozenset()
        self._snapshot = EngineSnapshot(
            rules=tuple(rules),
            partitions=partitions,
            static_rules=descriptors,
            request_filter=request_filter(rules),
            registered_positions=registered,
        )

        logger.info(
            "Loaded %d rules (%d rejected, %d skipped, %d static descriptors)",
            len(rules),
            len(rejected),
            len(skipped),
            len(descriptors),
        )
        return LoadReport(
            accepted=len(rules),
            rejected=tuple(rejected),
            skipped=tuple(skipped),
            static_rules=len(descriptors),
            static_registered=bool(descriptors) and bool(registered),
        )

    def set_enabled(self, enabled: bool) -> None:
        """Turn redirecting on or off."""
        if enabled == self._enabled:
            return

        self._enabled = enabled
        if enabled:
            logger.info("Enabling redirects")
            registered = self._register(self._snapshot.static_rules)
        else:
            logger.info("Disabling redirects")
            self._clear_registry()
            registered = frozenset()
        self._snapshot = replace(self._snapshot, registered_positions=registered)

    # --- Evaluation ---

    @property
    def static_active(self) -> bool:
        """True when some rules are currently left to the registry."""
        return bool(self._snapshot.registered_positions)

    def _candidates(self, snapshot: EngineSnapshot, kind: str) -> tuple[RedirectRule, ...]:
        rules = snapshot.partitions.rules_for(kind)
        if kind == HISTORY or not snapshot.registered_positions:
            return rules
        return tuple(r for r in rules if r.position not in snapshot.registered_positions)

    def evaluate(self, request: EvaluationRequest) -> MatchResult:
        """
        Evaluate one request against the current snapshot.

        Returns:
            MatchResult; is_match is True only when the caller should redirect.
        """
        if not self._enabled:
            return NO_MATCH

        if request.request_kind in NAVIGATION_KINDS and not request.frame_is_top_level:
            return NO_MATCH

        if self._guard.should_suppress(request.url):
            return MatchResult(is_match=False, suppressed=True)

        snapshot = self._snapshot
        for rule in self._candidates(snapshot, request.request_kind):
            result = evaluate_rule(rule, request.url)
            if not result.is_match:
                continue

            if result.missing_groups:
                self._report_missing(rule, request.url, result.missing_groups)

            destination = result.redirect_to or ""
            if not self._guard.record_redirect(destination):
                return replace(result, is_match=False, redirect_to=None, loop_detected=True)

            logger.info("Redirecting %s ===> %s", request.url, destination)
            return result

        return NO_MATCH

    def _report_missing(self, rule: RedirectRule, url: str, missing: tuple[int, ...]) -> None:
        groups = ", ".join(f"${n}" for n in missing)
        self._sink.emit(
            Diagnostic(
                code=DiagnosticCode.SUBSTITUTION_OUT_OF_RANGE,
                message=f"Placeholder {groups} has no matching capture group; substituted ''",
                severity=Severity.WARNING,
                rule=rule.description,
                url=url,
                details={"missing": list(missing)},
            )
        )


# --- Helpers ---


def _is_disabled(raw: Any) -> bool:
    if isinstance(raw, Mapping):
        return raw.get("disabled") is True
    return getattr(raw, "disabled", False) is True


def initial_records(records: Sequence[Any], rules: EngineRules | None = None) -> list[Any]:
    """Records to start with; an empty list gets the example rule when configured."""
    if records:
        return list(records)
    if rules is None or rules.seed_example_rule:
        logger.info("No redirects found, initializing with example redirect")
        return [dict(EXAMPLE_RULE)]
    return []


# --- Factory ---


def create_engine(
    rules: EngineRules | None = None,
    registry: StaticRuleRegistryPort | None = None,
    time_port: TimePort | None = None,
    sink: DiagnosticSink | None = None,
) -> RedirectEngine:
    """Create a RedirectEngine configured from engine rules."""
    rules = rules or EngineRules()
    sink = sink or LoggingDiagnosticSink()
    guard = LoopGuard(
        time_port=time_port,
        config=LoopGuardConfig(
            window_seconds=rules.loop_guard.window_seconds,
            threshold=rules.loop_guard.threshold,
        ),
        sink=sink,
    )
    return RedirectEngine(
        registry=registry,
        loop_guard=guard,
        sink=sink,
        static_enabled=rules.static_rules.enabled,
        static_priority=rules.static_rules.priority,
        enabled=rules.enabled,
    )
