"""
PatternCompiler - Turn rule pattern text into anchored matchers.

Key behaviors:
- Wildcard patterns: "*" matches any character sequence, everything else is literal
- Consecutive "*" collapse into a single capture group
- Regex patterns are used verbatim, always matched against the full URL
- Matching is case-insensitive
- The anchored expression is shared by dynamic matching and static descriptors
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache

from .models import CompiledMatcher, PatternCompileError, PatternType

logger = logging.getLogger(__name__)

# --- Constants ---

# Characters with special meaning in both Python re and RE2.
REGEX_METACHARACTERS = frozenset("\\.^$*+?{}[]|()")

WILDCARD_GROUP = "(.*?)"

MATCH_FLAGS = re.IGNORECASE

# JavaScript-style named group "(?<name>" (but not look-behind "(?<=" / "(?<!").
_JS_NAMED_GROUP = re.compile(r"(?<!\\)\(\?<(?![=!])([A-Za-z_][A-Za-z0-9_]*)>")

# Leading global inline flags such as "(?i)" must stay at the very start.
_GLOBAL_FLAGS = re.compile(r"^\(\?[aiLmsux]+\)")

# Constructs the static enforcement engine (RE2) does not support.
_UNSUPPORTED_STATIC = re.compile(r"\(\?<?[=!]|\(\?P=|\(\?\(|(?<!\\)(?:\\\\)*\\[1-9]")

# End-of-input anchor not itself escaped; group 1 keeps any escaped backslashes before it.
_END_ANCHOR = re.compile(r"(?<!\\)((?:\\\\)*)\\Z")


# --- Translation ---


def escape_literal(text: str) -> str:
    """Backslash-escape regex metacharacters, leaving everything else intact."""
    return "".join("\\" + ch if ch in REGEX_METACHARACTERS else ch for ch in text)


def wildcard_to_expression(pattern: str) -> str:
    """
    Translate a wildcard pattern into an anchored regular expression.

    Example:
        "http://example.com/*" -> "^http://example\\.com/(.*?)$"
    """
    parts: list[str] = []
    previous_star = False

    for segment in re.split(r"(\*)", pattern):
        if segment == "*":
            if not previous_star:
                parts.append(WILDCARD_GROUP)
            previous_star = True
        elif segment:
            parts.append(escape_literal(segment))
            previous_star = False

    return "^" + "".join(parts) + "$"


def regex_to_expression(pattern: str) -> str:
    """
    Anchor a user regular expression for full-URL matching.

    JavaScript named groups are rewritten to Python syntax and leading
    global flags are hoisted in front of the anchor.
    """
    body = _JS_NAMED_GROUP.sub(r"(?P<\1>", pattern)

    prefix = ""
    flags = _GLOBAL_FLAGS.match(body)
    if flags:
        prefix = flags.group(0)
        body = body[flags.end() :]

    return f"{prefix}^(?:{body})$"


def to_static_expression(matcher: CompiledMatcher) -> str:
    """
    Render a matcher's expression in the static enforcement dialect (RE2).

    Raises:
        PatternCompileError: If the expression uses Python-only constructs.
    """
    expression = matcher.expression
    if _UNSUPPORTED_STATIC.search(expression):
        raise PatternCompileError(
            code="unsupported_static_syntax",
            pattern=matcher.source,
            message="Pattern uses look-around, backreferences or conditionals",
        )
    return _END_ANCHOR.sub(r"\1\\z", expression)


# --- Compilation ---


@lru_cache(maxsize=512)
def _compile(pattern: str, pattern_type: PatternType) -> CompiledMatcher:
    if pattern_type is PatternType.WILDCARD:
        expression = wildcard_to_expression(pattern)
    else:
        try:
            re.compile(pattern)
        except re.error as e:
            raise PatternCompileError(
                code="invalid_regex",
                pattern=pattern,
                message=f"Invalid regular expression ({e})",
            ) from e
        expression = regex_to_expression(pattern)

    try:
        regex = re.compile(expression, MATCH_FLAGS)
    except re.error as e:
        raise PatternCompileError(
            code="invalid_regex",
            pattern=pattern,
            message=f"Invalid regular expression ({e})",
        ) from e

    return CompiledMatcher(
        source=pattern,
        pattern_type=pattern_type,
        expression=expression,
        regex=regex,
    )


def compile_pattern(pattern: str, pattern_type: PatternType | str) -> CompiledMatcher:
    """
    Compile rule pattern text into a matcher.

    Args:
        pattern: Pattern text in the author's syntax.
        pattern_type: PatternType or its code ("W" / "R").

    Returns:
        CompiledMatcher matching the full URL.

    Raises:
        PatternCompileError: On empty pattern, unknown type or invalid regex.
    """
    if not pattern:
        raise PatternCompileError(
            code="empty_pattern",
            pattern=pattern,
            message="Pattern must not be empty",
        )

    try:
        kind = PatternType(pattern_type)
    except ValueError as e:
        raise PatternCompileError(
            code="unknown_pattern_type",
            pattern=pattern,
            message=f"Unknown pattern type {pattern_type!r}",
        ) from e

    matcher = _compile(pattern, kind)
    logger.debug("Compiled %s pattern %r to %s", kind.name, pattern, matcher.expression)
    return matcher


def clear_cache() -> None:
    """Drop cached matchers."""
    _compile.cache_clear()
