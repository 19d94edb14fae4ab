"""Per-muon choice between the beam-spot fit, the vertex fit, and the fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .adapter import ConstraintFitAdapter
from .models import Muon, MuonFitResult, ReferencePoint, ResultSource

LOGGER = logging.getLogger(__name__)


@dataclass
class PerMuonFitPolicy:
    """Resolve the corrected `(pt, pt_err)` of one muon.

    Exactly one constrained fit is attempted per muon:
    - beam quality OK: beam-spot reference only
    - otherwise: vertex reference only.
    A failed attempt goes straight to the unconstrained values
    `(muon.pt, muon.best_track.pt_err)`; a failed beam-spot fit is not
    retried against the vertex.
    """

    adapter: ConstraintFitAdapter = field(default_factory=ConstraintFitAdapter)

    def resolve(
        self,
        muon: Muon,
        beam_reference: ReferencePoint,
        beam_quality_ok: bool,
        vertex_reference: ReferencePoint,
    ) -> MuonFitResult:
        """Return the constrained result for `muon`, or its fallback."""
        source: ResultSource
        if beam_quality_ok:
            source = "beamspot"
            outcome = self.adapter.fit(muon.best_track, beam_reference)
        else:
            source = "vertex"
            outcome = self.adapter.fit(muon.best_track, vertex_reference)

        if outcome.success and outcome.track is not None:
            return MuonFitResult(
                muon_id=muon.muon_id,
                pt=outcome.track.pt,
                pt_err=outcome.track.pt_err,
                source=source,
                chi2=outcome.chi2,
            )
        LOGGER.debug(
            "Muon %s: %s constraint failed (%s); using unconstrained values.",
            muon.muon_id,
            source,
            outcome.reason,
        )
        return self.fallback(muon)

    @staticmethod
    def fallback(muon: Muon) -> MuonFitResult:
        """Unconstrained `(muon.pt, muon.best_track.pt_err)`."""
        return MuonFitResult(
            muon_id=muon.muon_id,
            pt=muon.pt,
            pt_err=muon.best_track.pt_err,
            source="fallback",
        )

