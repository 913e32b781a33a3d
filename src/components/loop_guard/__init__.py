"""
Loop guard component - Redirect loop suppression.
"""

from ._impl import (
    DEFAULT_CONFIG,
    LoopEntry,
    LoopGuard,
    LoopGuardConfig,
    create_loop_guard,
)

__all__ = [
    "DEFAULT_CONFIG",
    "LoopEntry",
    "LoopGuard",
    "LoopGuardConfig",
    "create_loop_guard",
]
