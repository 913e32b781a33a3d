"""
Patterns component - Wildcard and regex pattern compilation.
"""

from ._impl import (
    REGEX_METACHARACTERS,
    WILDCARD_GROUP,
    clear_cache,
    compile_pattern,
    escape_literal,
    regex_to_expression,
    to_static_expression,
    wildcard_to_expression,
)
from .models import CompiledMatcher, PatternCompileError, PatternType

__all__ = [
    # Entry points
    "compile_pattern",
    "to_static_expression",
    # Translation helpers
    "escape_literal",
    "regex_to_expression",
    "wildcard_to_expression",
    "clear_cache",
    # Models
    "CompiledMatcher",
    "PatternCompileError",
    "PatternType",
    # Constants
    "REGEX_METACHARACTERS",
    "WILDCARD_GROUP",
]
