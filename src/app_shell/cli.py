import argparse
import json
import logging
import sys
from pathlib import Path

from src.app_shell.config import configure_logging, load_engine_rules
from src.components.engine import (
    EvaluateInput,
    PreviewInput,
    RedirectEngine,
    create_engine,
    run_evaluate,
    run_preview,
)
from src.components.redirects import MAIN_FRAME, REQUEST_KINDS
from src.components.static_rules import compile_static
from src.rules.loader import load_rule_records
from src.rules.models import EngineRules

logger = logging.getLogger("cli")


def read_records(path: Path) -> list:
    if not path.exists():
        logger.error(f"Redirects file {path} not found.")
        sys.exit(1)
    try:
        return load_rule_records(path)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)


def build_engine(rules: EngineRules, records: list) -> RedirectEngine:
    engine = create_engine(rules)
    engine.load(records)
    return engine


def handle_check(rules: EngineRules, args: argparse.Namespace) -> int:
    records = read_records(Path(args.file))
    failures = 0
    skipped = 0

    for position, record in enumerate(records):
        out = run_preview(PreviewInput(record=record))
        name = record.get("description", "") if isinstance(record, dict) else ""
        label = f"#{position} {name}".rstrip()

        if out.errors:
            # switched-off records are reported but never fail the check
            if isinstance(record, dict) and record.get("disabled") is True:
                skipped += 1
                print(f"SKIPPED  {label} (disabled)")
            else:
                failures += 1
                print(f"INVALID  {label}")
            for err in out.errors:
                where = f" ({err.field})" if err.field else ""
                print(f"    {err.code}{where}: {err.message}")
        elif out.preview is not None and out.preview.error:
            print(f"WARNING  {label}: {out.preview.error}")
        else:
            result = out.preview.result if out.preview else ""
            print(f"OK       {label}" + (f" -> {result}" if result else ""))

    summary = f"{len(records) - failures - skipped} of {len(records)} rules valid."
    if skipped:
        summary += f" {skipped} disabled rule(s) skipped."
    print(summary)
    return 1 if failures else 0


def handle_evaluate(rules: EngineRules, args: argparse.Namespace) -> int:
    engine = build_engine(rules, read_records(Path(args.file)))
    out = run_evaluate(
        EvaluateInput(
            url=args.url,
            request_kind=args.kind,
            frame_is_top_level=not args.subframe,
        ),
        engine=engine,
    )

    result = out.result
    if result.is_match:
        print(result.redirect_to)
        return 0

    print("No match.")
    return 2


def handle_static(rules: EngineRules, args: argparse.Namespace) -> int:
    engine = build_engine(rules, read_records(Path(args.file)))
    descriptors = compile_static(engine.snapshot.rules, rules.static_rules.priority)
    print(json.dumps([d.to_dnr() for d in descriptors], indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Redirect rule engine CLI")
    parser.add_argument("--config", help="Engine rules YAML (default: redirector_rules.yaml)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # check
    check_parser = subparsers.add_parser("check", help="Validate a redirects file")
    check_parser.add_argument("file", help="Redirects JSON export or YAML list")

    # evaluate
    evaluate_parser = subparsers.add_parser("evaluate", help="Evaluate a URL against the rules")
    evaluate_parser.add_argument("file", help="Redirects JSON export or YAML list")
    evaluate_parser.add_argument("url", help="URL to evaluate")
    evaluate_parser.add_argument(
        "--kind", default=MAIN_FRAME, choices=sorted(REQUEST_KINDS), help="Request kind"
    )
    evaluate_parser.add_argument(
        "--subframe", action="store_true", help="Request comes from a nested frame"
    )

    # static
    static_parser = subparsers.add_parser("static", help="Print static declarative rules")
    static_parser.add_argument("file", help="Redirects JSON export or YAML list")

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    try:
        rules = load_engine_rules(Path(args.config) if args.config else None)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1
    configure_logging(rules)

    if args.command == "check":
        return handle_check(rules, args)
    elif args.command == "evaluate":
        return handle_evaluate(rules, args)
    elif args.command == "static":
        return handle_static(rules, args)
    return 1


if __name__ == "__main__":
    sys.exit(main())
