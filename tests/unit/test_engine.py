"""
Tests for the redirect engine.

Covers:
- Loading rule lists (rejections, atomic snapshot swap, static sync)
- Request dispatch by kind and frame
- First-match-wins ordering
- Loop suppression and the loop threshold
- Component entry points
"""

from __future__ import annotations

import pytest

from src.adapters.diagnostics import RecordingDiagnosticSink
from src.adapters.static_registry import InMemoryStaticRuleRegistry
from src.components.engine import (
    EMPTY_SNAPSHOT,
    EngineSnapshot,
    EvaluateInput,
    EvaluateOutput,
    EvaluationRequest,
    LoadRulesInput,
    LoadRulesOutput,
    PreviewInput,
    PreviewOutput,
    RedirectEngine,
    create_engine,
    initial_records,
    run,
    run_evaluate,
    run_load,
    run_preview,
)
from src.components.loop_guard import LoopGuard
from src.components.partition import EMPTY_PARTITIONS
from src.core.ports.diagnostics import DiagnosticCode, Severity
from src.rules.models import EXAMPLE_RULE, EngineRules, LoopGuardRules, StaticRulesRules
from tests.conftest import MockTimePort, make_record

STATIC_RECORD = make_record(
    description="Static",
    includePattern="http://static.example/*",
    redirectUrl="https://fixed.example/",
    appliesTo=["main_frame", "image"],
)

HISTORY_RECORD = make_record(
    description="History",
    includePattern="https://app.example/#/old/*",
    redirectUrl="https://app.example/#/new/$1",
    appliesTo=["history"],
)


# --- Fixtures ---


@pytest.fixture
def engine(time_port: MockTimePort, sink: RecordingDiagnosticSink) -> RedirectEngine:
    """Engine without a static registry; every rule is evaluated per request."""
    return RedirectEngine(loop_guard=LoopGuard(time_port=time_port, sink=sink), sink=sink)


@pytest.fixture
def static_engine(
    time_port: MockTimePort,
    sink: RecordingDiagnosticSink,
    registry: InMemoryStaticRuleRegistry,
) -> RedirectEngine:
    """Engine that hands placeholder-free rules to the registry."""
    return RedirectEngine(
        registry=registry,
        loop_guard=LoopGuard(time_port=time_port, sink=sink),
        sink=sink,
    )


def _eval(engine: RedirectEngine, url: str, kind: str = "main_frame", top: bool = True):
    return engine.evaluate(EvaluationRequest(url=url, request_kind=kind, frame_is_top_level=top))


# --- Loading ---


class TestLoad:
    """Test rule list replacement."""

    def test_starts_empty(self) -> None:
        engine = RedirectEngine()
        assert engine.snapshot is EMPTY_SNAPSHOT
        assert not _eval(engine, "http://example.com/cats").is_match

    def test_load_example(self, engine: RedirectEngine) -> None:
        report = engine.load([EXAMPLE_RULE])
        assert report.accepted == 1
        assert report.success
        assert engine.request_filter == ("main_frame",)
        assert engine.has_placeholder_rules
        assert not engine.has_history_rules

    def test_bad_records_skipped(
        self, engine: RedirectEngine, sink: RecordingDiagnosticSink
    ) -> None:
        records = [
            make_record(description="bad regex", includePattern="(", patternType="R"),
            EXAMPLE_RULE,
            make_record(description="no target", redirectUrl=""),
        ]
        report = engine.load(records)

        assert report.accepted == 1
        assert not report.success
        assert [(e.position, e.description) for e in report.rejected] == [
            (0, "bad regex"),
            (2, "no target"),
        ]
        assert [d.rule for d in sink.with_code(DiagnosticCode.INVALID_PATTERN)] == ["bad regex"]
        assert [d.rule for d in sink.with_code(DiagnosticCode.MALFORMED_RULE)] == ["no target"]
        assert _eval(engine, "http://example.com/cats").is_match

    def test_disabled_bad_records_do_not_fail_load(
        self, engine: RedirectEngine, sink: RecordingDiagnosticSink
    ) -> None:
        records = [
            EXAMPLE_RULE,
            make_record(description="parked", redirectUrl="", disabled=True),
        ]
        report = engine.load(records)

        assert report.success
        assert report.rejected == ()
        assert [(e.position, e.description) for e in report.skipped] == [(1, "parked")]
        (diag,) = sink.with_code(DiagnosticCode.MALFORMED_RULE)
        assert diag.severity is Severity.WARNING
        assert diag.details == {"position": 1, "disabled": True}

    def test_snapshot_defaults_independent(self) -> None:
        snapshot = EngineSnapshot()
        assert snapshot.partitions is EMPTY_PARTITIONS
        assert snapshot.registered_positions == frozenset()
        assert EngineSnapshot(rules=()) == snapshot

    def test_record_error_as_dict(self, engine: RedirectEngine) -> None:
        report = engine.load([make_record(description="x", redirectUrl="")])
        assert report.rejected[0].as_dict() == {
            "position": 0,
            "description": "x",
            "errors": [
                {"code": "malformed_rule", "message": "Redirect URL is required", "field": "redirectUrl"}
            ],
        }

    def test_reload_replaces_snapshot(self, engine: RedirectEngine) -> None:
        engine.load([EXAMPLE_RULE])
        before = engine.snapshot

        engine.load([STATIC_RECORD])

        assert engine.snapshot is not before
        assert len(before.rules) == 1
        assert before.rules[0].include_pattern == "http://example.com/*"
        assert not _eval(engine, "http://example.com/cats").is_match
        assert _eval(engine, "http://static.example/a").redirect_to == "https://fixed.example/"

    def test_disabled_rules_kept_but_inactive(self, engine: RedirectEngine) -> None:
        engine.load([make_record(disabled=True)])
        assert len(engine.snapshot.rules) == 1
        assert engine.snapshot.active_rules == ()
        assert not _eval(engine, "http://example.com/cats").is_match


class TestStaticRegistration:
    """Test registry sync on load."""

    def test_static_rules_registered(
        self, static_engine: RedirectEngine, registry: InMemoryStaticRuleRegistry
    ) -> None:
        report = static_engine.load([EXAMPLE_RULE, STATIC_RECORD])
        assert report.static_rules == 2
        assert report.static_registered
        assert [d.request_kind for d in registry.list_rules()] == ["main_frame", "image"]

    def test_reload_replaces_registered_set(
        self, static_engine: RedirectEngine, registry: InMemoryStaticRuleRegistry
    ) -> None:
        static_engine.load([STATIC_RECORD])
        static_engine.load([EXAMPLE_RULE])
        assert registry.list_rules() == []
        assert registry.update_count == 2

    def test_registry_refusal_still_loads(
        self, time_port: MockTimePort, sink: RecordingDiagnosticSink
    ) -> None:
        registry = InMemoryStaticRuleRegistry(max_rules=1)
        engine = RedirectEngine(
            registry=registry, loop_guard=LoopGuard(time_port=time_port), sink=sink
        )
        report = engine.load([STATIC_RECORD])
        assert report.accepted == 1
        assert not report.static_registered
        assert registry.list_rules() == []
        assert engine.snapshot.registered_positions == frozenset()
        assert _eval(engine, "http://static.example/a").redirect_to == "https://fixed.example/"

    def test_refused_reload_clears_earlier_set(
        self, time_port: MockTimePort, sink: RecordingDiagnosticSink
    ) -> None:
        registry = InMemoryStaticRuleRegistry(max_rules=1)
        engine = RedirectEngine(
            registry=registry, loop_guard=LoopGuard(time_port=time_port), sink=sink
        )
        first = make_record(
            description="Old",
            includePattern="http://old.example/*",
            redirectUrl="https://old-target.example/",
        )
        assert engine.load([first]).static_registered
        assert len(registry.list_rules()) == 1

        report = engine.load([STATIC_RECORD])

        assert not report.static_registered
        assert registry.list_rules() == []
        assert not _eval(engine, "http://old.example/a").is_match
        assert _eval(engine, "http://static.example/a").redirect_to == "https://fixed.example/"
        result = _eval(engine, "http://static.example/a.png", kind="image")
        assert result.redirect_to == "https://fixed.example/"

    def test_unsupported_syntax_evaluated_per_request(
        self, static_engine: RedirectEngine, registry: InMemoryStaticRuleRegistry
    ) -> None:
        record = make_record(
            description="Lookahead",
            includePattern=r"http://a\.com/(?!keep).*",
            patternType="R",
            redirectUrl="http://b.com/",
        )
        report = static_engine.load([record])

        assert report.accepted == 1
        assert report.static_rules == 0
        assert registry.list_rules() == []
        assert _eval(static_engine, "http://a.com/x").redirect_to == "http://b.com/"
        assert not _eval(static_engine, "http://a.com/keep").is_match

    def test_enable_after_refusal_stays_dynamic(
        self, time_port: MockTimePort, sink: RecordingDiagnosticSink
    ) -> None:
        registry = InMemoryStaticRuleRegistry(max_rules=1)
        engine = RedirectEngine(
            registry=registry, loop_guard=LoopGuard(time_port=time_port), sink=sink
        )
        engine.load([STATIC_RECORD])
        engine.set_enabled(False)
        engine.set_enabled(True)

        assert not engine.static_active
        assert _eval(engine, "http://static.example/a").redirect_to == "https://fixed.example/"

    def test_static_disabled(self, registry: InMemoryStaticRuleRegistry) -> None:
        engine = RedirectEngine(registry=registry, static_enabled=False)
        report = engine.load([STATIC_RECORD])
        assert report.static_rules == 0
        assert _eval(engine, "http://static.example/a").is_match


# --- Dispatch ---


class TestDispatch:
    """Test which rules see which requests."""

    def test_wildcard_scenario(self, engine: RedirectEngine) -> None:
        engine.load([EXAMPLE_RULE])
        result = _eval(engine, "http://example.com/cats")
        assert result.is_match
        assert result.redirect_to == "https://google.com/search?q=cats"
        assert not _eval(engine, "http://example.org/cats").is_match

    def test_regex_scenario(self, engine: RedirectEngine) -> None:
        engine.load(
            [
                make_record(
                    includePattern=r"^http://foo\.com/(a|b)$",
                    patternType="R",
                    redirectUrl="http://bar.com/$1",
                )
            ]
        )
        assert _eval(engine, "http://foo.com/a").redirect_to == "http://bar.com/a"
        assert not _eval(engine, "http://foo.com/c").is_match

    def test_kind_not_named(self, engine: RedirectEngine) -> None:
        engine.load([EXAMPLE_RULE])
        assert not _eval(engine, "http://example.com/cats", kind="image").is_match

    def test_sub_frame_navigation_ignored(self, engine: RedirectEngine) -> None:
        engine.load([make_record(appliesTo=["main_frame", "history"])])
        assert not _eval(engine, "http://example.com/cats", top=False).is_match
        assert not _eval(engine, "http://example.com/cats", kind="history", top=False).is_match

    def test_sub_frame_request_kind_evaluated(self, engine: RedirectEngine) -> None:
        engine.load([make_record(appliesTo=["sub_frame"])])
        assert _eval(engine, "http://example.com/cats", kind="sub_frame", top=False).is_match

    def test_first_match_wins(self, engine: RedirectEngine) -> None:
        engine.load(
            [
                make_record(description="first", redirectUrl="https://one.example/$1"),
                make_record(description="second", redirectUrl="https://two.example/$1"),
            ]
        )
        result = _eval(engine, "http://example.com/x")
        assert result.redirect_to == "https://one.example/x"
        assert result.rule is not None and result.rule.description == "first"

    def test_excluded_rule_falls_through(self, engine: RedirectEngine) -> None:
        engine.load(
            [
                make_record(description="first", excludePattern="*/skip"),
                make_record(description="second", redirectUrl="https://two.example/$1"),
            ]
        )
        assert _eval(engine, "http://example.com/skip").redirect_to == "https://two.example/skip"

    def test_static_rules_left_to_registry(self, static_engine: RedirectEngine) -> None:
        static_engine.load([STATIC_RECORD, EXAMPLE_RULE])
        assert not _eval(static_engine, "http://static.example/a").is_match
        assert _eval(static_engine, "http://example.com/cats").is_match

    def test_history_evaluates_static_rules(self, static_engine: RedirectEngine) -> None:
        static_engine.load(
            [
                make_record(
                    includePattern="https://app.example/#/a",
                    redirectUrl="https://app.example/#/b",
                    appliesTo=["history"],
                )
            ]
        )
        result = _eval(static_engine, "https://app.example/#/a", kind="history")
        assert result.redirect_to == "https://app.example/#/b"

    def test_history_rule(self, engine: RedirectEngine) -> None:
        engine.load([HISTORY_RECORD])
        assert engine.has_history_rules
        assert engine.request_filter == ()
        result = _eval(engine, "https://app.example/#/old/page", kind="history")
        assert result.redirect_to == "https://app.example/#/new/page"
        assert not _eval(engine, "https://app.example/#/old/page").is_match

    def test_missing_group_reported(
        self, engine: RedirectEngine, sink: RecordingDiagnosticSink
    ) -> None:
        engine.load([make_record(redirectUrl="https://x.example/$1$3")])
        result = _eval(engine, "http://example.com/cats")
        assert result.redirect_to == "https://x.example/cats"
        (diag,) = sink.with_code(DiagnosticCode.SUBSTITUTION_OUT_OF_RANGE)
        assert diag.details == {"missing": [3]}
        assert diag.url == "http://example.com/cats"


# --- Enable / Disable ---


class TestEnabled:
    def test_disabled_engine_never_matches(self, engine: RedirectEngine) -> None:
        engine.load([EXAMPLE_RULE])
        engine.set_enabled(False)
        assert not engine.enabled
        assert not _eval(engine, "http://example.com/cats").is_match

    def test_toggle_syncs_registry(
        self, static_engine: RedirectEngine, registry: InMemoryStaticRuleRegistry
    ) -> None:
        static_engine.load([STATIC_RECORD])
        static_engine.set_enabled(False)
        assert registry.list_rules() == []
        static_engine.set_enabled(True)
        assert len(registry.list_rules()) == 2

    def test_load_while_disabled_does_not_register(
        self, registry: InMemoryStaticRuleRegistry
    ) -> None:
        engine = RedirectEngine(registry=registry, enabled=False)
        report = engine.load([STATIC_RECORD])
        assert not report.static_registered
        assert registry.list_rules() == []


# --- Loop Protection ---


class TestLoopProtection:
    """Test suppression and the loop threshold through the engine."""

    def test_destination_suppressed_once(self, engine: RedirectEngine) -> None:
        engine.load([make_record(includePattern="http://*/", redirectUrl="http://$1/")])

        first = _eval(engine, "http://a.example/")
        assert first.redirect_to == "http://a.example/"

        second = _eval(engine, "http://a.example/")
        assert second.suppressed
        assert not second.is_match

        assert _eval(engine, "http://a.example/").is_match

    def test_fourth_redirect_blocked(
        self, engine: RedirectEngine, sink: RecordingDiagnosticSink
    ) -> None:
        engine.load([make_record(redirectUrl="https://fixed.example/?from=$1")])
        results = [_eval(engine, "http://example.com/x") for _ in range(4)]

        assert [r.is_match for r in results] == [True, True, True, False]
        assert results[3].loop_detected
        assert results[3].redirect_to is None
        assert len(sink.with_code(DiagnosticCode.LOOP_THRESHOLD_EXCEEDED)) == 1

    def test_window_lapse_unblocks(self, engine: RedirectEngine, time_port: MockTimePort) -> None:
        engine.load([EXAMPLE_RULE])
        for _ in range(4):
            _eval(engine, "http://example.com/x")
        time_port.advance(5)
        assert _eval(engine, "http://example.com/x").is_match


# --- Factory & Helpers ---


class TestCreateEngine:
    def test_from_rules(self, time_port: MockTimePort) -> None:
        rules = EngineRules(
            loop_guard=LoopGuardRules(window_seconds=10, threshold=1),
            static_rules=StaticRulesRules(enabled=True, priority=3),
        )
        registry = InMemoryStaticRuleRegistry()
        engine = create_engine(rules, registry=registry, time_port=time_port)

        assert engine.loop_guard.config.threshold == 1
        assert not engine.static_active
        engine.load([STATIC_RECORD])
        assert engine.static_active
        assert registry.list_rules()[0].priority == 3

    def test_disabled_by_rules(self) -> None:
        engine = create_engine(EngineRules(enabled=False))
        engine.load([EXAMPLE_RULE])
        assert not _eval(engine, "http://example.com/x").is_match


class TestInitialRecords:
    def test_keeps_existing(self) -> None:
        records = [STATIC_RECORD]
        assert initial_records(records) == records

    def test_seeds_example(self) -> None:
        assert initial_records([]) == [EXAMPLE_RULE]

    def test_seeding_disabled(self) -> None:
        assert initial_records([], EngineRules(seed_example_rule=False)) == []


# --- Component Entry Points ---


class TestComponentEntryPoints:
    def test_run_load(self, engine: RedirectEngine) -> None:
        out = run_load(LoadRulesInput(records=[EXAMPLE_RULE, {"bad": True}]), engine=engine)
        assert isinstance(out, LoadRulesOutput)
        assert not out.success
        assert out.report.accepted == 1
        assert [e.position for e in out.errors] == [1]

    def test_run_evaluate(self, engine: RedirectEngine) -> None:
        engine.load([EXAMPLE_RULE])
        out = run_evaluate(EvaluateInput(url="http://example.com/cats"), engine=engine)
        assert isinstance(out, EvaluateOutput)
        assert out.result.redirect_to == "https://google.com/search?q=cats"

    def test_run_preview_uses_record_example(self) -> None:
        out = run_preview(PreviewInput(record=EXAMPLE_RULE))
        assert out.success
        assert out.preview is not None
        assert out.preview.result == EXAMPLE_RULE["exampleResult"]

    def test_run_preview_explicit_url(self) -> None:
        out = run_preview(PreviewInput(record=EXAMPLE_RULE, example_url="http://other.com/"))
        assert not out.success
        assert out.preview is not None
        assert out.preview.error == "Example URL does not match the include pattern"

    def test_run_preview_invalid_record(self) -> None:
        out = run_preview(PreviewInput(record=make_record(redirectUrl="")))
        assert out.preview is None
        assert not out.success
        assert out.errors[0].field == "redirectUrl"

    def test_run_dispatches(self, engine: RedirectEngine) -> None:
        assert isinstance(run(LoadRulesInput(records=[]), engine=engine), LoadRulesOutput)
        assert isinstance(run(EvaluateInput(url="http://x/"), engine=engine), EvaluateOutput)
        assert isinstance(run(PreviewInput(record=EXAMPLE_RULE), engine=engine), PreviewOutput)

    def test_run_unknown_input(self, engine: RedirectEngine) -> None:
        with pytest.raises(ValueError, match="Unknown input type"):
            run("nope", engine=engine)  # type: ignore[arg-type]
