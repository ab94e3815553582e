#!/usr/bin/env python3
"""
Command line self-check.

Examples:
    selfcheck check --fever 37.8 --cough mild --fatigue moderate --urgent-meeting
    selfcheck history
    selfcheck trend --out trend.png
"""

import argparse
import asyncio
import sys
from pathlib import Path

from pydantic import ValidationError

from selfcheck.backends import make_backend
from selfcheck.client import AssessmentClient, is_fallback
from selfcheck.config import load_settings
from selfcheck.guide import (
    DECISION_TITLES,
    SEVERITY_LABELS,
    SYMPTOM_FORM_LABELS,
    SYMPTOM_GUIDE,
    render_result,
)
from selfcheck.history import JsonFileHistoryStore
from selfcheck.schemas import PHYSICAL_FIELDS, MENTAL_FIELDS, SEVERITY_LEVELS, SymptomRecord, WorkContext
from selfcheck.session import SelfCheckSession
from selfcheck.trend import decision_counts, plot_trend


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="selfcheck", description="出社判断サポーター")
    parser.add_argument(
        "--history-dir",
        default=None,
        help="Directory holding the history file (default: SELFCHECK_HISTORY_DIR or ~/.selfcheck)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Run a self-check")
    check.add_argument("--gender", choices=["male", "female", "other", "unspecified"], default="unspecified")
    check.add_argument("--fever", type=float, default=36.5, help="Body temperature (35.0-40.0)")
    for name in PHYSICAL_FIELDS + MENTAL_FIELDS:
        check.add_argument(
            f"--{name.replace('_', '-')}",
            dest=name,
            choices=SEVERITY_LEVELS,
            default="none",
            help=SYMPTOM_FORM_LABELS[name],
        )
    check.add_argument("--other", default="", help="Other symptoms (free text)")
    check.add_argument("--can-remote", dest="can_remote", action="store_true", default=True, help="Remote work is possible (default)")
    check.add_argument("--no-remote", dest="can_remote", action="store_false", help="Remote work is not possible")
    check.add_argument("--urgent-meeting", action="store_true", help="An irreplaceable meeting is scheduled today")
    check.add_argument("--peak-period", action="store_true", help="The team is in a peak period")

    sub.add_parser("history", help="List past self-checks")
    sub.add_parser("clear-history", help="Delete all past self-checks")

    trend = sub.add_parser("trend", help="Write the score trend chart")
    trend.add_argument("--out", required=True, help="Output path for the PNG chart")

    sub.add_parser("guide", help="Show what each severity level means")
    return parser


def run_check(args, session: SelfCheckSession) -> int:
    try:
        symptoms = SymptomRecord(
            gender=args.gender,
            fever=args.fever,
            cough=args.cough,
            fatigue=args.fatigue,
            headache=args.headache,
            sore_throat=args.sore_throat,
            mental_stress=args.mental_stress,
            mood_depression=args.mood_depression,
            sleep_quality=args.sleep_quality,
            other_symptoms=args.other,
        )
    except ValidationError as e:
        print(f"ERROR: Invalid symptoms: {e}", file=sys.stderr)
        return 2
    context = WorkContext(
        can_remote=args.can_remote,
        has_urgent_meeting=args.urgent_meeting,
        is_peak_period=args.peak_period,
    )

    session.fill_form(symptoms, context)
    print("AIが判定中...")
    try:
        assessment = asyncio.run(session.run_assessment())
    except OSError as e:
        print(f"ERROR: Could not save history: {e}", file=sys.stderr)
        return 1
    if is_fallback(assessment):
        print("Warning: the model's answer could not be used; showing the default recommendation", file=sys.stderr)
    print(render_result(assessment))
    return 0


def show_history(history) -> int:
    if not history:
        print("No history yet.")
        return 0
    for entry in history:
        a = entry.assessment
        print(f"{entry.timestamp}  {a.decision:<8} {a.score:>3}  {DECISION_TITLES[a.decision]}")
    counts = decision_counts(history)
    print()
    print("  ".join(f"{decision}: {n}" for decision, n in counts.items()))
    return 0


def show_guide() -> int:
    for name, guide in SYMPTOM_GUIDE.items():
        print(f"{SYMPTOM_FORM_LABELS[name]}の目安")
        for level, text in guide.items():
            print(f"  【{SEVERITY_LABELS[level]}】{text}")
        print()
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "guide":
        return show_guide()

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    history_dir = Path(args.history_dir).expanduser() if args.history_dir else settings.history_dir
    store = JsonFileHistoryStore(history_dir)

    if args.command == "clear-history":
        store.clear()
        print("History cleared.")
        return 0

    if args.command == "check":
        try:
            backend = make_backend(settings)
        except ValueError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 2
        session = SelfCheckSession(AssessmentClient(backend, timeout=settings.timeout), store)
        session.start()
        return run_check(args, session)

    history = store.load()
    if args.command == "history":
        return show_history(history)

    if args.command == "trend":
        out = plot_trend(history, Path(args.out))
        if out is None:
            return 1
        print(f"Trend chart written to: {out}")
        return 0

    return 2


if __name__ == "__main__":
    sys.exit(main())
