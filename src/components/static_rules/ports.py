"""
Static rules component port definitions.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .models import StaticRuleDescriptor


class RegistrationError(Exception):
    """Raised by a registry when an update is refused."""


class StaticRuleRegistryPort(Protocol):
    """Declarative enforcement mechanism holding registered rules."""

    def get_registered_ids(self) -> list[int]:
        """Get ids of every currently registered rule."""
        ...

    def update(
        self,
        remove_ids: Sequence[int],
        add_rules: Sequence[StaticRuleDescriptor],
    ) -> None:
        """Remove and add rules in one all-or-nothing operation."""
        ...
