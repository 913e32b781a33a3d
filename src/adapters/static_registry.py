"""
In-memory static rule registry.

Stands in for the browser's declarative rule store in development,
the CLI and tests. Updates are all-or-nothing.
"""

from __future__ import annotations

from collections.abc import Sequence

from src.components.static_rules import RegistrationError, StaticRuleDescriptor


class InMemoryStaticRuleRegistry:
    """Registry keyed by rule id."""

    def __init__(self, max_rules: int | None = None) -> None:
        self._rules: dict[int, StaticRuleDescriptor] = {}
        self._max_rules = max_rules
        self.update_count = 0

    def get_registered_ids(self) -> list[int]:
        return list(self._rules)

    def update(
        self,
        remove_ids: Sequence[int],
        add_rules: Sequence[StaticRuleDescriptor],
    ) -> None:
        removing = set(remove_ids)
        staged = {k: v for k, v in self._rules.items() if k not in removing}

        for rule in add_rules:
            if rule.rule_id in staged:
                raise RegistrationError(f"Rule id {rule.rule_id} is already registered")
            staged[rule.rule_id] = rule

        if self._max_rules is not None and len(staged) > self._max_rules:
            raise RegistrationError(
                f"Too many rules: {len(staged)} exceeds limit of {self._max_rules}"
            )

        self._rules = staged
        self.update_count += 1

    def list_rules(self) -> list[StaticRuleDescriptor]:
        """Get registered rules ordered by id."""
        return [self._rules[k] for k in sorted(self._rules)]

    def clear(self) -> None:
        """Drop every rule (for test isolation)."""
        self._rules.clear()
