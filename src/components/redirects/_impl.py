"""
RedirectRules - Rule validation, matching and template substitution.

Turns loosely typed rule records into compiled RedirectRule entities and
evaluates a URL against a single rule.

Key behaviors:
- Bad records are rejected with every problem listed, never half-built
- Exclude pattern wins over include pattern
- "$N" placeholders are substituted left to right, 1-indexed
- A placeholder without a matching capture becomes ""
- Same rule and URL always give the same result
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, unquote

from pydantic import ValidationError

from src.components.patterns import (
    CompiledMatcher,
    PatternCompileError,
    PatternType,
    compile_pattern,
)
from src.rules.models import RuleRecord

from .models import (
    REQUEST_KINDS,
    ExamplePreview,
    InvalidRuleError,
    MatchResult,
    ProcessMatches,
    RedirectRule,
    RuleValidationError,
)

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$(\d+)")

# encodeURIComponent leaves these unescaped in addition to alphanumerics and "-_.~".
_URL_ENCODE_SAFE = "!~*'()"


# --- Record Parsing ---


def parse_record(raw: RuleRecord | Mapping[str, Any]) -> RuleRecord:
    """
    Validate a raw rule record.

    Raises:
        InvalidRuleError: With code "malformed_rule" for schema problems.
    """
    if isinstance(raw, RuleRecord):
        return raw

    if not isinstance(raw, Mapping):
        raise InvalidRuleError(
            [
                RuleValidationError(
                    code="malformed_rule",
                    message=f"Rule record must be a mapping, got {type(raw).__name__}",
                )
            ]
        )

    try:
        return RuleRecord.model_validate(raw)
    except ValidationError as e:
        errors = [
            RuleValidationError(
                code="malformed_rule",
                message=err["msg"],
                field=".".join(str(p) for p in err["loc"]) or None,
            )
            for err in e.errors()
        ]
        raise InvalidRuleError(errors, description=str(raw.get("description", ""))) from e


def _compile_or_error(
    pattern: str,
    pattern_type: PatternType,
    field: str,
    errors: list[RuleValidationError],
) -> CompiledMatcher | None:
    try:
        return compile_pattern(pattern, pattern_type)
    except PatternCompileError as e:
        code = "malformed_rule" if e.code == "empty_pattern" else "invalid_pattern"
        errors.append(RuleValidationError(code=code, message=e.message, field=field))
        return None


def _clean_kinds(
    kinds: list[str],
    errors: list[RuleValidationError],
) -> tuple[str, ...]:
    """Dedupe request kinds in order and flag unknown ones."""
    seen: list[str] = []
    for kind in kinds:
        if kind not in REQUEST_KINDS:
            errors.append(
                RuleValidationError(
                    code="malformed_rule",
                    message=f"Unknown request kind '{kind}'",
                    field="appliesTo",
                )
            )
        elif kind not in seen:
            seen.append(kind)

    if not kinds:
        errors.append(
            RuleValidationError(
                code="malformed_rule",
                message="Rule must apply to at least one request kind",
                field="appliesTo",
            )
        )
    return tuple(seen)


def build_rule(raw: RuleRecord | Mapping[str, Any], position: int = 0) -> RedirectRule:
    """
    Build a compiled RedirectRule from a record.

    Validates:
    - Record schema
    - Include pattern (and exclude pattern, if any) compile
    - Redirect template is present
    - Request kinds are known and non-empty

    Raises:
        InvalidRuleError: Listing every problem found.
    """
    record = parse_record(raw)
    errors: list[RuleValidationError] = []
    pattern_type = PatternType(record.pattern_type)

    include = _compile_or_error(record.include_pattern, pattern_type, "includePattern", errors)

    exclude = None
    if record.exclude_pattern:
        exclude = _compile_or_error(record.exclude_pattern, pattern_type, "excludePattern", errors)

    if not record.redirect_url:
        errors.append(
            RuleValidationError(
                code="malformed_rule",
                message="Redirect URL is required",
                field="redirectUrl",
            )
        )

    applies_to = _clean_kinds(record.applies_to, errors)

    if errors or include is None:
        raise InvalidRuleError(errors, description=record.description)

    return RedirectRule(
        description=record.description,
        include=include,
        exclude=exclude,
        redirect_template=record.redirect_url,
        applies_to=applies_to,
        pattern_type=pattern_type,
        process_matches=ProcessMatches(record.process_matches),
        disabled=record.disabled,
        position=position,
    )


# --- Substitution ---


def _base64_decode(value: str) -> str:
    compact = "".join(value.split())
    padded = compact + "=" * (-len(compact) % 4)
    return base64.b64decode(padded, validate=True).decode("utf-8")


def apply_process(value: str, process: ProcessMatches) -> str:
    """Apply a capture transform."""
    if process is ProcessMatches.URL_ENCODE:
        return quote(value, safe=_URL_ENCODE_SAFE)
    if process is ProcessMatches.URL_DECODE:
        return unquote(value)
    if process is ProcessMatches.DOUBLE_URL_DECODE:
        return unquote(unquote(value))
    if process is ProcessMatches.BASE64_DECODE:
        try:
            return _base64_decode(value)
        except (binascii.Error, UnicodeDecodeError) as e:
            logger.warning("Capture %r is not valid base64 (%s); using it unprocessed", value, e)
            return value
    return value


def substitute(
    template: str,
    captures: tuple[str, ...],
    process: ProcessMatches = ProcessMatches.NO_PROCESSING,
) -> tuple[str, tuple[int, ...]]:
    """
    Substitute "$N" placeholders with processed captures.

    Returns:
        Tuple of (result, missing group numbers).
    """
    missing: list[int] = []

    def _replace(m: re.Match[str]) -> str:
        index = int(m.group(1))
        if 1 <= index <= len(captures):
            return apply_process(captures[index - 1], process)
        missing.append(index)
        return ""

    result = _PLACEHOLDER.sub(_replace, template)
    return result, tuple(missing)


# --- Evaluation ---


def evaluate(rule: RedirectRule, url: str) -> MatchResult:
    """
    Evaluate a URL against one rule.

    Returns:
        MatchResult with redirect_to set on a match.
    """
    captures = rule.include.match(url)
    if captures is None:
        return MatchResult(is_match=False, rule=rule)

    if rule.exclude is not None and rule.exclude.matches(url):
        return MatchResult(is_match=False, is_excluded=True, rule=rule)

    redirect_to, missing = substitute(rule.redirect_template, captures, rule.process_matches)
    return MatchResult(
        is_match=True,
        redirect_to=redirect_to,
        missing_groups=missing,
        rule=rule,
    )


def preview_example(rule: RedirectRule, example_url: str) -> ExamplePreview:
    """
    Show what a rule does to an example URL.

    Used by rule editors to validate a rule before saving it.
    """
    if not example_url:
        return ExamplePreview(error="No example URL given")

    result = evaluate(rule, example_url)
    if result.is_excluded:
        return ExamplePreview(error="The exclude pattern excludes the example url")
    if not result.is_match:
        return ExamplePreview(error="Example URL does not match the include pattern")
    return ExamplePreview(result=result.redirect_to or "")
