"""
Engine component - Redirect rule set lifecycle and request evaluation.
"""

from ._impl import RedirectEngine, create_engine, initial_records
from .component import run, run_evaluate, run_load, run_preview
from .models import (
    EMPTY_SNAPSHOT,
    EngineSnapshot,
    EvaluateInput,
    EvaluateOutput,
    EvaluationRequest,
    LoadReport,
    LoadRulesInput,
    LoadRulesOutput,
    PreviewInput,
    PreviewOutput,
    RecordError,
)

__all__ = [
    # Entry points
    "run",
    "run_evaluate",
    "run_load",
    "run_preview",
    # Input models
    "EvaluateInput",
    "EvaluationRequest",
    "LoadRulesInput",
    "PreviewInput",
    # Output models
    "EvaluateOutput",
    "LoadReport",
    "LoadRulesOutput",
    "PreviewOutput",
    "RecordError",
    # Engine
    "EMPTY_SNAPSHOT",
    "EngineSnapshot",
    "RedirectEngine",
    "create_engine",
    "initial_records",
]
