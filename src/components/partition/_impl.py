"""
RulePartitionIndex - Group enabled rules by request kind.

Key behaviors:
- One pass over the rules, author order kept inside every bucket
- Disabled rules never appear in any bucket
- "history" is its own bucket and never merged into network kinds
- The result is immutable; rebuilding means building a new index
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from src.components.redirects import HISTORY, RedirectRule
from src.core.ports.diagnostics import Diagnostic, DiagnosticCode, DiagnosticSink, Severity

logger = logging.getLogger(__name__)


class PartitionedRuleSet(Mapping[str, tuple[RedirectRule, ...]]):
    """Read-only mapping of request kind to ordered rules."""

    def __init__(self, buckets: dict[str, tuple[RedirectRule, ...]] | None = None) -> None:
        self._buckets = MappingProxyType(dict(buckets or {}))

    def __getitem__(self, kind: str) -> tuple[RedirectRule, ...]:
        return self._buckets[kind]

    def __iter__(self) -> Iterator[str]:
        return iter(self._buckets)

    def __len__(self) -> int:
        return len(self._buckets)

    def __repr__(self) -> str:
        sizes = {k: len(v) for k, v in self._buckets.items()}
        return f"PartitionedRuleSet({sizes})"

    def rules_for(self, kind: str) -> tuple[RedirectRule, ...]:
        """Rules for a kind, empty when none apply."""
        return self._buckets.get(kind, ())


EMPTY_PARTITIONS = PartitionedRuleSet()


def build_partitions(
    rules: Iterable[RedirectRule],
    sink: DiagnosticSink | None = None,
) -> PartitionedRuleSet:
    """
    Build the partition index.

    A rule naming zero request kinds is dropped with a diagnostic.
    """
    buckets: dict[str, list[RedirectRule]] = {}

    for rule in rules:
        if rule.disabled:
            continue

        if not rule.applies_to:
            if sink is None:
                logger.warning("Rule %r applies to no request kind; skipped", rule.description)
            else:
                sink.emit(
                    Diagnostic(
                        code=DiagnosticCode.MALFORMED_RULE,
                        message="Rule applies to no request kind",
                        severity=Severity.ERROR,
                        rule=rule.description,
                    )
                )
            continue

        for kind in rule.applies_to:
            buckets.setdefault(kind, []).append(rule)

    return PartitionedRuleSet({kind: tuple(items) for kind, items in buckets.items()})


def request_filter(rules: Iterable[RedirectRule]) -> tuple[str, ...]:
    """
    Network request kinds named by enabled rules, in first-seen order.

    "history" cannot be filtered by a request interceptor and is left out.
    """
    kinds: list[str] = []
    for rule in rules:
        if rule.disabled:
            continue
        for kind in rule.applies_to:
            if kind != HISTORY and kind not in kinds:
                kinds.append(kind)
    return tuple(kinds)
