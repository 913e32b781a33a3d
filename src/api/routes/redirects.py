"""
Redirects API Routes.

Endpoints used by rule editors and by the request-interception host.

Key behaviors:
- GET returns the stored records exactly as saved
- PUT replaces the records and rebuilds the engine in one step
- Invalid records are stored but reported and left out of the active set
- Evaluation never blocks; static rules are served in declarative form
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.adapters.rule_store import InMemoryRuleStore
from src.adapters.static_registry import InMemoryStaticRuleRegistry
from src.api.deps import get_engine, get_rule_store, get_static_registry
from src.components.engine import (
    EvaluateInput,
    LoadRulesInput,
    PreviewInput,
    RedirectEngine,
    run_evaluate,
    run_load,
    run_preview,
)
from src.components.redirects import MAIN_FRAME

router = APIRouter()


# --- Request Models ---


class SaveRedirectsRequest(BaseModel):
    """Request to replace every redirect."""

    redirects: list[dict[str, Any]] = Field(..., description="Rule records in author order")


class EvaluateRequest(BaseModel):
    """Request to evaluate a URL."""

    url: str = Field(..., description="Candidate URL")
    request_kind: str = Field(MAIN_FRAME, description="Request kind, or 'history'")
    frame_is_top_level: bool = Field(True, description="False for nested frames")


class PreviewRequest(BaseModel):
    """Request to preview a single record."""

    record: dict[str, Any]
    example_url: str | None = Field(None, description="Defaults to the record's exampleUrl")


class EnabledRequest(BaseModel):
    """Request to turn redirecting on or off."""

    enabled: bool


# --- Response Models ---


class RedirectsResponse(BaseModel):
    """Stored redirects."""

    redirects: list[dict[str, Any]]
    enabled: bool


class SaveRedirectsResponse(BaseModel):
    """Result of saving redirects."""

    message: str
    accepted: int
    rejected: list[dict[str, Any]]
    skipped: list[dict[str, Any]] = Field(default_factory=list)
    static_rules: int


class EvaluateResponse(BaseModel):
    """Evaluation result."""

    is_match: bool
    redirect_to: str | None = None
    is_excluded: bool = False
    suppressed: bool = False
    loop_detected: bool = False
    rule: str | None = None


class PreviewResponse(BaseModel):
    """Record preview."""

    ok: bool
    result: str = ""
    error: str | None = None
    errors: list[dict[str, Any]] = Field(default_factory=list)


class StaticRulesResponse(BaseModel):
    """Registered declarative rules."""

    rules: list[dict[str, Any]]
    request_filter: list[str]


class EnabledResponse(BaseModel):
    """Engine on/off state."""

    enabled: bool


# --- Routes ---


@router.get("", response_model=RedirectsResponse)
def get_redirects(
    store: InMemoryRuleStore = Depends(get_rule_store),
    engine: RedirectEngine = Depends(get_engine),
) -> RedirectsResponse:
    """Get every stored redirect."""
    return RedirectsResponse(redirects=store.get_all(), enabled=engine.enabled)


@router.put("", response_model=SaveRedirectsResponse)
def save_redirects(
    body: SaveRedirectsRequest,
    store: InMemoryRuleStore = Depends(get_rule_store),
    engine: RedirectEngine = Depends(get_engine),
) -> SaveRedirectsResponse:
    """Replace the stored redirects and rebuild the engine."""
    store.replace_all(body.redirects)
    out = run_load(LoadRulesInput(records=store.get_all()), engine=engine)

    return SaveRedirectsResponse(
        message="Redirects saved successfully",
        accepted=out.report.accepted,
        rejected=[e.as_dict() for e in out.errors],
        skipped=[e.as_dict() for e in out.report.skipped],
        static_rules=out.report.static_rules,
    )


@router.post("/evaluate", response_model=EvaluateResponse)
def evaluate_url(
    body: EvaluateRequest,
    engine: RedirectEngine = Depends(get_engine),
) -> EvaluateResponse:
    """Evaluate one URL against the active rules."""
    out = run_evaluate(
        EvaluateInput(
            url=body.url,
            request_kind=body.request_kind,
            frame_is_top_level=body.frame_is_top_level,
        ),
        engine=engine,
    )
    result = out.result
    return EvaluateResponse(
        is_match=result.is_match,
        redirect_to=result.redirect_to,
        is_excluded=result.is_excluded,
        suppressed=result.suppressed,
        loop_detected=result.loop_detected,
        rule=result.rule.description if result.rule else None,
    )


@router.post("/preview", response_model=PreviewResponse)
def preview_record(body: PreviewRequest) -> PreviewResponse:
    """Validate a record and apply it to an example URL."""
    out = run_preview(PreviewInput(record=body.record, example_url=body.example_url))
    if out.preview is None:
        return PreviewResponse(
            ok=False,
            errors=[{"code": e.code, "message": e.message, "field": e.field} for e in out.errors],
        )
    return PreviewResponse(
        ok=out.preview.ok,
        result=out.preview.result,
        error=out.preview.error,
    )


@router.get("/static-rules", response_model=StaticRulesResponse)
def get_static_rules(
    registry: InMemoryStaticRuleRegistry = Depends(get_static_registry),
    engine: RedirectEngine = Depends(get_engine),
) -> StaticRulesResponse:
    """Get the declarative rules currently registered."""
    return StaticRulesResponse(
        rules=[d.to_dnr() for d in registry.list_rules()],
        request_filter=list(engine.request_filter),
    )


@router.put("/enabled", response_model=EnabledResponse)
def set_enabled(
    body: EnabledRequest,
    engine: RedirectEngine = Depends(get_engine),
) -> EnabledResponse:
    """Turn redirecting on or off."""
    engine.set_enabled(body.enabled)
    return EnabledResponse(enabled=engine.enabled)
