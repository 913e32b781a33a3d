"""
Redirects component - Redirect rule validation, matching and substitution.
"""

from ._impl import (
    apply_process,
    build_rule,
    evaluate,
    parse_record,
    preview_example,
    substitute,
)
from .models import (
    HISTORY,
    MAIN_FRAME,
    NAVIGATION_KINDS,
    NETWORK_REQUEST_KINDS,
    NO_MATCH,
    REQUEST_KINDS,
    ExamplePreview,
    InvalidRuleError,
    MatchResult,
    ProcessMatches,
    RedirectRule,
    RuleValidationError,
)

__all__ = [
    # Entry points
    "build_rule",
    "evaluate",
    "parse_record",
    "preview_example",
    "substitute",
    "apply_process",
    # Models
    "ExamplePreview",
    "InvalidRuleError",
    "MatchResult",
    "NO_MATCH",
    "ProcessMatches",
    "RedirectRule",
    "RuleValidationError",
    # Request kinds
    "HISTORY",
    "MAIN_FRAME",
    "NAVIGATION_KINDS",
    "NETWORK_REQUEST_KINDS",
    "REQUEST_KINDS",
]
