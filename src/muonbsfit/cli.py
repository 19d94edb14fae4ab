"""Command-line interface for computing constrained muon pt on event inputs."""

from __future__ import annotations

import argparse
import logging

from .io import load_events_json, write_results_table
from .models import MAX_RELATIVE_WIDTH_ERROR, ConstraintConfig
from .orchestrator import FitOrchestrator


def build_parser() -> argparse.ArgumentParser:
    """Define and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="muon-bs-constraint",
        description="Recompute muon pt and ptErr with a beam-spot or primary-vertex constraint.",
    )
    parser.add_argument("--events", required=True, help="Input JSON with key 'events'.")
    parser.add_argument(
        "--out",
        required=True,
        help="Output table file for per-muon results (.parquet, .csv, .pkl).",
    )
    parser.add_argument(
        "--max-relative-width-error",
        type=float,
        default=MAX_RELATIVE_WIDTH_ERROR,
        help="Beam-spot quality gate on widthError/width in x and y.",
    )
    parser.add_argument(
        "--max-chi2",
        type=float,
        default=None,
        help="Optional chi2 cut above which a constrained fit counts as failed.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Process events on a thread pool with this many workers.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: load events, run the constraint, write table."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    config = ConstraintConfig(
        max_relative_width_error=args.max_relative_width_error,
        max_chi2=args.max_chi2,
    )
    events = load_events_json(args.events)
    results = FitOrchestrator(config=config).run_events(events, max_workers=args.workers)
    write_results_table(args.out, results)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
