"""Per-event choice of the beam-spot and best-vertex constraint targets."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import reduce
from typing import Sequence

from .models import BeamSpot, ConstraintConfig, PrimaryVertex, ReferencePoint

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceSelection:
    """Both reference candidates of one event and the beam-quality flag."""

    beam_reference: ReferencePoint
    vertex_reference: ReferencePoint
    beam_quality_ok: bool
    vertex_index: int | None = None


def select_reference_points(
    beam_spot: BeamSpot | None,
    vertices: Sequence[PrimaryVertex],
    scores: Sequence[float],
    config: ConstraintConfig | None = None,
) -> ReferenceSelection:
    """Build the beam-spot and vertex references for one event.

    The vertex reference comes from the first vertex holding the strictly
    highest positive score; `scores[i]` is paired with `vertices[i]` by
    position only. Without such a vertex the default reference is returned.
    """
    config = config or ConstraintConfig()
    if len(scores) != len(vertices):
        LOGGER.warning(
            "Vertex/score length mismatch (%d vertices, %d scores); pairing by position.",
            len(vertices),
            len(scores),
        )
    # Scores without a vertex at the same position can never be selected.
    index = best_scored_vertex_index(scores[: len(vertices)])
    if index is None:
        vertex_reference = ReferencePoint.default()
    else:
        vertex_reference = reference_from_vertex(vertices[index])
    return ReferenceSelection(
        beam_reference=reference_from_beam_spot(beam_spot),
        vertex_reference=vertex_reference,
        beam_quality_ok=beam_quality_ok(beam_spot, config),
        vertex_index=index,
    )


def best_scored_vertex_index(scores: Sequence[float]) -> int | None:
    """Return the index of the first strict maximum above zero, or `None`."""

    def _keep_best(
        best: tuple[int | None, float], item: tuple[int, float]
    ) -> tuple[int | None, float]:
        idx, score = item
        return (idx, score) if score > best[1] else best

    index, _ = reduce(_keep_best, enumerate(scores), (None, 0.0))
    return index


def beam_quality_ok(beam_spot: BeamSpot | None, config: ConstraintConfig | None = None) -> bool:
    """Gate on the relative uncertainty of both transverse beam widths.

    Fails for an absent/invalid beam spot and for widths at or below
    `config.min_width`, so the ratio is never evaluated on a zero denominator.
    """
    config = config or ConstraintConfig()
    if beam_spot is None or not beam_spot.valid:
        return False
    for width, error in (
        (beam_spot.width_x, beam_spot.width_x_error),
        (beam_spot.width_y, beam_spot.width_y_error),
    ):
        if not math.isfinite(width) or not math.isfinite(error):
            return False
        if width <= config.min_width:
            return False
        if error / width > config.max_relative_width_error:
            return False
    return True


def reference_from_beam_spot(beam_spot: BeamSpot | None) -> ReferencePoint:
    """Beam-spot position with the luminous-region widths added to its covariance."""
    if beam_spot is None or not beam_spot.valid:
        return ReferencePoint.default()
    c = beam_spot.cov3
    cov3 = (
        (c[0][0] + beam_spot.width_x * beam_spot.width_x, c[0][1], c[0][2]),
        (c[1][0], c[1][1] + beam_spot.width_y * beam_spot.width_y, c[1][2]),
        (c[2][0], c[2][1], c[2][2] + beam_spot.sigma_z * beam_spot.sigma_z),
    )
    return ReferencePoint(
        x=beam_spot.x,
        y=beam_spot.y,
        z=beam_spot.z,
        cov3=cov3,
        kind="beamspot",
    )


def reference_from_vertex(vertex: PrimaryVertex) -> ReferencePoint:
    """Vertex position and covariance as a constraint target."""
    return ReferencePoint(
        x=vertex.x,
        y=vertex.y,
        z=vertex.z,
        cov3=vertex.cov3,
        kind="vertex",
        source_id=vertex.pv_id,
    )
