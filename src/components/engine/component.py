"""
Engine component - Redirect rule engine entry points.

Invariants:
- A rule list replacement never leaves a partially built rule set visible
- Rejected records never reach the matching path
- Evaluation is synchronous and never blocks on I/O
"""

from __future__ import annotations

from src.components.redirects import InvalidRuleError, build_rule, preview_example

from ._impl import RedirectEngine
from .models import (
    EvaluateInput,
    EvaluateOutput,
    EvaluationRequest,
    LoadRulesInput,
    LoadRulesOutput,
    PreviewInput,
    PreviewOutput,
)

# --- Component Entry Points ---


def run_load(inp: LoadRulesInput, *, engine: RedirectEngine) -> LoadRulesOutput:
    """
    Replace the engine's rule list.

    Args:
        inp: Input containing the raw rule records.
        engine: Engine to reload.

    Returns:
        LoadRulesOutput with the load report; success is False if any
        record was rejected (the remaining records are still active).
    """
    report = engine.load(inp.records)
    return LoadRulesOutput(
        report=report,
        errors=list(report.rejected),
        success=report.success,
    )


def run_evaluate(inp: EvaluateInput, *, engine: RedirectEngine) -> EvaluateOutput:
    """
    Evaluate one request.

    Args:
        inp: Input containing URL, request kind and frame position.
        engine: Engine holding the active rules.

    Returns:
        EvaluateOutput with the match result.
    """
    result = engine.evaluate(
        EvaluationRequest(
            url=inp.url,
            request_kind=inp.request_kind,
            frame_is_top_level=inp.frame_is_top_level,
        )
    )
    return EvaluateOutput(result=result)


def run_preview(inp: PreviewInput) -> PreviewOutput:
    """
    Check a single record and show what it does to an example URL.

    Does not touch any engine state.
    """
    try:
        rule = build_rule(inp.record)
    except InvalidRuleError as e:
        return PreviewOutput(preview=None, errors=list(e.errors), success=False)

    example_url = inp.example_url
    if example_url is None:
        example_url = getattr(inp.record, "example_url", None)
        if example_url is None and hasattr(inp.record, "get"):
            example_url = inp.record.get("exampleUrl", "")

    preview = preview_example(rule, example_url or "")
    return PreviewOutput(preview=preview, errors=[], success=preview.ok)


def run(
    inp: LoadRulesInput | EvaluateInput | PreviewInput,
    *,
    engine: RedirectEngine,
) -> LoadRulesOutput | EvaluateOutput | PreviewOutput:
    """
    Main entry point for the engine component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, LoadRulesInput):
        return run_load(inp, engine=engine)
    elif isinstance(inp, EvaluateInput):
        return run_evaluate(inp, engine=engine)
    elif isinstance(inp, PreviewInput):
        return run_preview(inp)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
