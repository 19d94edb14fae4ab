"""Physics/math helpers for the single-track constrained fit."""

from __future__ import annotations

import math

from .models import FitOutcome, Matrix3x3, ReferencePoint, TrackState


def constrain_track(
    track: TrackState,
    reference: ReferencePoint,
    max_chi2: float | None = None,
) -> FitOutcome:
    """Refit one track under the constraint that it passes through `reference`.

    The transverse state `(pt, phi, dxy)` is updated with one linearised
    Kalman step whose measurement is "impact parameter to the reference is
    zero", with variance equal to the reference covariance projected
    perpendicular to the track. `pt` moves through its correlation with
    `phi`/`dxy` in `track.cov3`.

    Failure (never an exception) is reported when:
    - the track or reference are degenerate (`bad_track`, `degenerate_reference`)
    - the innovation variance is not positive (`singular`)
    - `chi2` exceeds `max_chi2` (`chi2`)
    - the updated state is unphysical (`unphysical`).
    """
    if not (track.pt > 0.0 and math.isfinite(track.pt)):
        return FitOutcome.failed("bad_track")
    if reference.is_degenerate:
        return FitOutcome.failed("degenerate_reference")

    s = math.sin(track.phi)
    c = math.cos(track.phi)
    dx = track.x - reference.x
    dy = track.y - reference.y
    residual = -track.transverse_ip(reference.x, reference.y)
    h = (0.0, -dx * c - dy * s, 1.0)
    ref_var = (
        s * s * reference.cov3[0][0]
        - 2.0 * s * c * reference.cov3[0][1]
        + c * c * reference.cov3[1][1]
    )

    ch = mat_vec3(track.cov3, h)
    innovation = dot3(h, ch) + ref_var
    if not innovation > 0.0 or not math.isfinite(innovation):
        return FitOutcome.failed("singular")
    chi2 = residual * residual / innovation
    if max_chi2 is not None and chi2 > max_chi2:
        return FitOutcome.failed("chi2")

    gain = (ch[0] / innovation, ch[1] / innovation, ch[2] / innovation)
    pt = track.pt + gain[0] * residual
    phi = track.phi + gain[1] * residual
    dxy = gain[2] * residual
    # C' = C - K (H C); H C is the transpose of C H for symmetric C.
    cov3 = tuple(
        tuple(track.cov3[i][j] - gain[i] * ch[j] for j in range(3)) for i in range(3)
    )
    if not (pt > 0.0 and math.isfinite(pt)) or not cov3[0][0] > 0.0:
        return FitOutcome.failed("unphysical")

    refit = TrackState(
        track_id=track.track_id,
        pt=pt,
        phi=phi,
        eta=track.eta,
        charge=track.charge,
        x=track.x - dxy * math.sin(phi),
        y=track.y + dxy * math.cos(phi),
        z=track.z,
        cov3=cov3,  # type: ignore[arg-type]
    )
    return FitOutcome(success=True, track=refit, chi2=chi2)


def mat_vec3(m: Matrix3x3, v: tuple[float, float, float]) -> tuple[float, float, float]:
    """3x3 matrix times 3-vector."""
    return (
        m[0][0] * v[0] + m[0][1] * v[1] + m[0][2] * v[2],
        m[1][0] * v[0] + m[1][1] * v[1] + m[1][2] * v[2],
        m[2][0] * v[0] + m[2][1] * v[1] + m[2][2] * v[2],
    )


def dot3(a: tuple[float, float, float], b: tuple[float, float, float]) -> float:
    """3D dot product."""
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]
