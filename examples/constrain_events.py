"""Multi-event API example: constrain muons and print the value maps.

Run from repository root without installation:
    PYTHONPATH=src python examples/constrain_events.py
"""

from __future__ import annotations

import logging
from pathlib import Path

from muonbsfit import ConstraintConfig, FitOrchestrator
from muonbsfit.io import load_events_json, package_value_maps, write_results_table


def main() -> int:
    """Load events, run the constraint, print value maps, and write a CSV table."""
    logging.basicConfig(level=logging.INFO)
    events = load_events_json("examples/events.json")
    orchestrator = FitOrchestrator(config=ConstraintConfig(max_chi2=25.0))
    results = orchestrator.run_events(events)
    for event, res in zip(events, results, strict=True):
        maps = package_value_maps(event.muons, res.pts, res.pt_errs)
        print(event.event_id, maps)
    out_path = Path("examples/constrained_muons.csv")
    write_results_table(out_path, results)
    print(f"Wrote {sum(len(r.results) for r in results)} muons to {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
