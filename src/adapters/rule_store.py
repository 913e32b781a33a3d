"""
In-memory rule record store.

Holds the authored rule list exactly as submitted (invalid records
included, so an editor can show and fix them). Durable storage is the
host's concern; this adapter keeps records for the process lifetime.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from typing import Any


class InMemoryRuleStore:
    """Ordered list of raw rule records."""

    def __init__(self, records: Sequence[Any] | None = None) -> None:
        self._records: list[Any] = copy.deepcopy(list(records or []))

    def get_all(self) -> list[Any]:
        return copy.deepcopy(self._records)

    def replace_all(self, records: Sequence[Any]) -> None:
        self._records = copy.deepcopy(list(records))

    def __len__(self) -> int:
        return len(self._records)
