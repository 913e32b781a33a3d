"""
Static rules component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class StaticRuleDescriptor:
    """Declarative matcher handed to the enforcement collaborator."""

    rule_id: int
    match_expression: str
    target_url: str
    request_kind: str
    case_sensitive: bool = False
    priority: int = 1
    description: str = ""
    rule_position: int = 0  # position of the source rule in the authored list

    def to_dnr(self) -> dict[str, Any]:
        """Render as a declarativeNetRequest dynamic rule."""
        return {
            "id": self.rule_id,
            "priority": self.priority,
            "action": {
                "type": "redirect",
                "redirect": {"url": self.target_url},
            },
            "condition": {
                "regexFilter": self.match_expression,
                "resourceTypes": [self.request_kind],
                "isUrlFilterCaseSensitive": self.case_sensitive,
            },
        }


@dataclass(frozen=True)
class SyncResult:
    """Outcome of replacing the registered rule set."""

    removed: int
    added: int
