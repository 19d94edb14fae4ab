"""Core data models used by the constrained muon-pt framework.

This module defines:
- immutable physics objects (`TrackState`, `Muon`, `BeamSpot`, `PrimaryVertex`)
- the constraint target fed to the fit (`ReferencePoint`)
- fit and per-muon outputs (`FitOutcome`, `MuonFitResult`)
- event containers (`EventInput`)
- configurable constants (`ConstraintConfig`).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal

Matrix3x3 = tuple[tuple[float, float, float], tuple[float, float, float], tuple[float, float, float]]

ZERO_COV3: Matrix3x3 = ((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0))

MAX_RELATIVE_WIDTH_ERROR = 0.3

ReferenceKind = Literal["beamspot", "vertex", "default"]
ResultSource = Literal["beamspot", "vertex", "fallback"]


@dataclass(frozen=True)
class TrackState:
    """Fitted charged-particle track at its point of closest approach.

    `cov3` stores the covariance of the transverse parameters
    `(pt, phi, dxy)`, with `dxy` the signed transverse impact parameter
    w.r.t. the track's own `(x, y)` reference point (zero by construction).
    """

    track_id: str
    pt: float
    phi: float
    eta: float
    charge: int
    x: float
    y: float
    z: float
    cov3: Matrix3x3

    @property
    def pt_err(self) -> float:
        """Transverse-momentum uncertainty from the covariance diagonal."""
        var = self.cov3[0][0]
        return math.sqrt(var) if var > 0.0 else 0.0

    def transverse_ip(self, x: float, y: float) -> float:
        """Signed transverse impact parameter of the straight track to `(x, y)`."""
        # Perpendicular to the momentum direction, positive on the left.
        return -(self.x - x) * math.sin(self.phi) + (self.y - y) * math.cos(self.phi)


@dataclass(frozen=True)
class Muon:
    """Muon candidate referencing its best-estimate track."""

    muon_id: str
    pt: float
    eta: float
    phi: float
    charge: int
    best_track: TrackState


@dataclass(frozen=True)
class BeamSpot:
    """Luminous-region description for one event.

    An absent beam spot is represented with `valid=False` rather than `None`
    wherever a record is required.
    """

    x: float
    y: float
    z: float
    width_x: float
    width_y: float
    width_x_error: float
    width_y_error: float
    sigma_z: float = 0.0
    cov3: Matrix3x3 = ZERO_COV3
    valid: bool = True


@dataclass(frozen=True)
class PrimaryVertex:
    """Reconstructed primary-vertex candidate for one event."""

    pv_id: str
    x: float
    y: float
    z: float
    cov3: Matrix3x3


@dataclass(frozen=True)
class ReferencePoint:
    """Constraint target: a position plus its 3x3 covariance."""

    x: float
    y: float
    z: float
    cov3: Matrix3x3
    kind: ReferenceKind = "default"
    source_id: str | None = None

    @classmethod
    def default(cls) -> "ReferencePoint":
        """Origin with zero covariance, used when no vertex is selected."""
        return cls(0.0, 0.0, 0.0, ZERO_COV3, kind="default")

    @property
    def is_degenerate(self) -> bool:
        """True when no positive transverse variance is available."""
        return not (self.cov3[0][0] > 0.0 or self.cov3[1][1] > 0.0)


@dataclass(frozen=True)
class FitOutcome:
    """Result of one constrained-fit attempt."""

    success: bool
    track: TrackState | None = None
    chi2: float | None = None
    reason: str | None = None

    @classmethod
    def failed(cls, reason: str) -> "FitOutcome":
        return cls(success=False, reason=reason)


@dataclass(frozen=True)
class MuonFitResult:
    """Corrected `(pt, pt_err)` for one muon plus its provenance."""

    muon_id: str
    pt: float
    pt_err: float
    source: ResultSource
    chi2: float | None = None


@dataclass(frozen=True)
class EventInput:
    """One event payload: muons, beam spot, and scored vertex candidates.

    `vertex_scores[i]` belongs to `vertices[i]`; the pairing is positional.
    """

    event_id: str
    muons: tuple[Muon, ...]
    beam_spot: BeamSpot | None
    vertices: tuple[PrimaryVertex, ...] = ()
    vertex_scores: tuple[float, ...] = ()


@dataclass(frozen=True)
class ConstraintConfig:
    """Tunable constants for reference selection and the default fit."""

    max_relative_width_error: float = MAX_RELATIVE_WIDTH_ERROR
    min_width: float = 1e-12
    max_chi2: float | None = None
