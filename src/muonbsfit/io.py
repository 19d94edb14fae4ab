"""Input/output helpers for JSON event inputs, value maps, and tabular export."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Sequence

from .models import BeamSpot, EventInput, Matrix3x3, Muon, PrimaryVertex, TrackState, ZERO_COV3
from .orchestrator import EventFitResult

VALUE_MAP_PT = "muonBSConstrainedPt"
VALUE_MAP_PT_ERR = "muonBSConstrainedPtErr"


def load_events_json(path: str | Path) -> list[EventInput]:
    """Load multi-event input JSON into `EventInput` objects.

    Expected shape:
    {
      "events": [
        {"event_id": "...", "muons": [...], "beam_spot": {...} | null,
         "vertices": [...], "vertex_scores": [...]},
        ...
      ]
    }
    """
    data = _load_json(path)
    events_data = data.get("events")
    if not isinstance(events_data, list):
        raise ValueError("Events JSON must contain a list under key 'events'.")
    return [_parse_event_item(item=event, idx=idx) for idx, event in enumerate(events_data)]


def package_value_maps(
    muons: Sequence[Muon],
    pts: Sequence[float],
    pt_errs: Sequence[float],
) -> dict[str, dict[str, float]]:
    """Key the parallel output sequences by muon identity."""
    if not (len(muons) == len(pts) == len(pt_errs)):
        raise ValueError(
            f"Output length mismatch: {len(muons)} muons, {len(pts)} pts, {len(pt_errs)} ptErrs."
        )
    return {
        VALUE_MAP_PT: {m.muon_id: float(v) for m, v in zip(muons, pts, strict=True)},
        VALUE_MAP_PT_ERR: {m.muon_id: float(v) for m, v in zip(muons, pt_errs, strict=True)},
    }


def write_results_table(path: str | Path, results: Sequence[EventFitResult]) -> None:
    """Write per-muon results into Parquet/CSV/Pickle table."""
    out = Path(path)
    suffix = out.suffix.lower()
    if suffix not in (".parquet", ".csv", ".pkl", ".pickle"):
        raise ValueError(
            f"Unsupported output format '{suffix}'. Use .parquet, .csv, or .pkl"
        )
    pd = _require_pandas()
    df = pd.DataFrame(_result_rows(results), columns=_RESULT_COLUMNS)
    if suffix == ".parquet":
        df.to_parquet(out, index=False)
    elif suffix == ".csv":
        df.to_csv(out, index=False)
    else:
        df.to_pickle(out)


_RESULT_COLUMNS = ["event_id", "muon_id", VALUE_MAP_PT, VALUE_MAP_PT_ERR, "source", "chi2"]


def _result_rows(results: Sequence[EventFitResult]) -> list[dict[str, Any]]:
    """Flatten event results into DataFrame-ready row dictionaries."""
    rows: list[dict[str, Any]] = []
    for event in results:
        for res in event.results:
            rows.append(
                {
                    "event_id": event.event_id,
                    "muon_id": res.muon_id,
                    VALUE_MAP_PT: res.pt,
                    VALUE_MAP_PT_ERR: res.pt_err,
                    "source": res.source,
                    "chi2": res.chi2,
                }
            )
    return rows


def _require_pandas():
    """Import pandas lazily and provide a clear installation hint on failure."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required to write output tables. Install pandas and pyarrow."
        ) from exc
    return pd


def _parse_event_item(item: Any, idx: int) -> EventInput:
    """Parse one event dictionary into an `EventInput`."""
    if not isinstance(item, dict):
        raise ValueError(f"Event entry at index {idx} must be an object.")
    event_id = str(item.get("event_id", f"evt{idx}"))
    context = f"event '{event_id}'"
    muons_data = item.get("muons")
    if not isinstance(muons_data, list):
        raise ValueError(f"Event '{event_id}' must contain a list under key 'muons'.")
    vertices_data = item.get("vertices", item.get("primary_vertices", []))
    if not isinstance(vertices_data, list):
        raise ValueError(f"Event '{event_id}' key 'vertices' must be a list.")
    scores_data = item.get("vertex_scores", [])
    if not isinstance(scores_data, list):
        raise ValueError(f"Event '{event_id}' key 'vertex_scores' must be a list.")
    beam_spot_data = item.get("beam_spot")
    return EventInput(
        event_id=event_id,
        muons=tuple(
            _parse_muon_item(item=m, idx=midx, context=context)
            for midx, m in enumerate(muons_data)
        ),
        beam_spot=None if beam_spot_data is None else _parse_beam_spot(beam_spot_data, context),
        vertices=tuple(
            _parse_vertex_item(item=v, idx=vidx, context=context)
            for vidx, v in enumerate(vertices_data)
        ),
        vertex_scores=tuple(float(s) for s in scores_data),
    )


def _parse_muon_item(item: Any, idx: int, context: str) -> Muon:
    """Parse one muon dictionary (with nested best track) into a `Muon`."""
    if not isinstance(item, dict):
        raise ValueError(f"Muon entry at index {idx} in {context} must be an object.")
    muon_id = str(item.get("muon_id", f"mu{idx}"))
    track_data = item.get("best_track")
    if not isinstance(track_data, dict):
        raise ValueError(f"Muon '{muon_id}' in {context} must define a 'best_track' object.")
    track = _parse_track_item(track_data, f"muon '{muon_id}' in {context}", default_id=f"{muon_id}_trk")
    return Muon(
        muon_id=muon_id,
        pt=float(item.get("pt", track.pt)),
        eta=float(item.get("eta", track.eta)),
        phi=float(item.get("phi", track.phi)),
        charge=int(item.get("charge", track.charge)),
        best_track=track,
    )


def _parse_track_item(item: dict[str, Any], context: str, default_id: str) -> TrackState:
    """Parse one track dictionary into a `TrackState`."""
    try:
        return TrackState(
            track_id=str(item.get("track_id", default_id)),
            pt=float(item["pt"]),
            phi=float(item["phi"]),
            eta=float(item.get("eta", 0.0)),
            charge=int(item.get("charge", 0)),
            x=float(item.get("x", 0.0)),
            y=float(item.get("y", 0.0)),
            z=float(item.get("z", 0.0)),
            cov3=_parse_cov3(item["cov3"], f"Track of {context}"),
        )
    except KeyError as exc:
        raise ValueError(f"Track of {context} is missing field {exc.args[0]!r}.") from exc


def _parse_beam_spot(item: Any, context: str) -> BeamSpot:
    """Parse the beam-spot dictionary of one event."""
    if not isinstance(item, dict):
        raise ValueError(f"Beam spot in {context} must be an object or null.")
    try:
        return BeamSpot(
            x=float(item["x"]),
            y=float(item["y"]),
            z=float(item["z"]),
            width_x=float(item["width_x"]),
            width_y=float(item["width_y"]),
            width_x_error=float(item["width_x_error"]),
            width_y_error=float(item["width_y_error"]),
            sigma_z=float(item.get("sigma_z", 0.0)),
            cov3=_parse_cov3(item["cov3"], f"Beam spot in {context}") if "cov3" in item else ZERO_COV3,
            valid=bool(item.get("valid", True)),
        )
    except KeyError as exc:
        raise ValueError(f"Beam spot in {context} is missing field {exc.args[0]!r}.") from exc


def _parse_vertex_item(item: Any, idx: int, context: str) -> PrimaryVertex:
    """Parse one vertex dictionary into a `PrimaryVertex`."""
    if not isinstance(item, dict):
        raise ValueError(f"Vertex at index {idx} in {context} must be an object.")
    try:
        return PrimaryVertex(
            pv_id=str(item.get("pv_id", f"pv{idx}")),
            x=float(item["x"]),
            y=float(item["y"]),
            z=float(item["z"]),
            cov3=_parse_cov3(item["cov3"], f"Vertex at index {idx} in {context}"),
        )
    except KeyError as exc:
        raise ValueError(f"Vertex at index {idx} in {context} is missing field {exc.args[0]!r}.") from exc


def _parse_cov3(value: Any, what: str) -> Matrix3x3:
    """Validate and convert a nested list into a 3x3 covariance tuple."""
    if not isinstance(value, list) or len(value) != 3:
        raise ValueError(f"cov3 of {what} must be a 3x3 list.")
    rows: list[tuple[float, float, float]] = []
    for row in value:
        if not isinstance(row, list) or len(row) != 3:
            raise ValueError(f"cov3 of {what} must be a 3x3 list.")
        rows.append((float(row[0]), float(row[1]), float(row[2])))
    return (rows[0], rows[1], rows[2])


def _load_json(path: str | Path) -> dict[str, Any]:
    """Read and validate a JSON object document from disk."""
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"JSON document at {path} must be an object.")
    return data
