"""
StaticRuleCompiler - Precompile placeholder-free rules for declarative enforcement.

Key behaviors:
- Only enabled rules whose template has no placeholder are compiled
- One descriptor per request kind, "history" never included
- The match expression is the Pattern Compiler's anchored expression in
  the enforcement dialect, so static and dynamic matching agree
- Registration replaces the whole set in one update (remove all, add all)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from src.components.patterns import PatternCompileError, to_static_expression
from src.components.redirects import HISTORY, RedirectRule
from src.core.ports.diagnostics import Diagnostic, DiagnosticCode, DiagnosticSink, Severity

from .models import StaticRuleDescriptor, SyncResult
from .ports import StaticRuleRegistryPort

logger = logging.getLogger(__name__)


def is_static_candidate(rule: RedirectRule) -> bool:
    """Check if a rule can be enforced without per-request evaluation."""
    return not rule.disabled and not rule.has_placeholders


def compile_static(
    rules: Iterable[RedirectRule],
    priority: int = 1,
    sink: DiagnosticSink | None = None,
) -> tuple[StaticRuleDescriptor, ...]:
    """
    Compile static descriptors for every eligible rule.

    Rule ids are assigned sequentially from 1 in author order.
    """
    descriptors: list[StaticRuleDescriptor] = []
    next_id = 1

    for rule in rules:
        if not is_static_candidate(rule):
            continue

        kinds = [k for k in rule.applies_to if k != HISTORY]
        if not kinds:
            continue

        try:
            expression = to_static_expression(rule.include)
        except PatternCompileError as e:
            if sink is None:
                logger.warning("Error creating static rule for %r: %s", rule.description, e.message)
            else:
                sink.emit(
                    Diagnostic(
                        code=DiagnosticCode.INVALID_PATTERN,
                        message=f"Cannot create static rule: {e.message}",
                        severity=Severity.ERROR,
                        rule=rule.description,
                    )
                )
            continue

        for kind in kinds:
            descriptors.append(
                StaticRuleDescriptor(
                    rule_id=next_id,
                    match_expression=expression,
                    target_url=rule.redirect_template,
                    request_kind=kind,
                    priority=priority,
                    description=rule.description,
                    rule_position=rule.position,
                )
            )
            next_id += 1

    return tuple(descriptors)


def sync_static_rules(
    registry: StaticRuleRegistryPort,
    descriptors: Sequence[StaticRuleDescriptor],
) -> SyncResult:
    """
    Replace every registered rule with ``descriptors``.

    Raises:
        RegistrationError: If the registry refuses the update; the
            previously registered set is left in place.
    """
    existing = list(registry.get_registered_ids())
    registry.update(remove_ids=existing, add_rules=list(descriptors))
    logger.info("Static rules replaced: removed %d, added %d", len(existing), len(descriptors))
    return SyncResult(removed=len(existing), added=len(descriptors))


def clear_static_rules(registry: StaticRuleRegistryPort) -> SyncResult:
    """Remove every registered rule."""
    return sync_static_rules(registry, ())
