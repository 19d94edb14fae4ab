"""Public package exports for the constrained muon-pt framework."""

from .adapter import ConstraintFitAdapter, FitService, default_fit_service
from .models import (
    BeamSpot,
    ConstraintConfig,
    EventInput,
    FitOutcome,
    Muon,
    MuonFitResult,
    PrimaryVertex,
    ReferencePoint,
    TrackState,
)
from .orchestrator import EventFitResult, FitOrchestrator
from .physics import constrain_track
from .policy import PerMuonFitPolicy
from .selector import (
    ReferenceSelection,
    beam_quality_ok,
    best_scored_vertex_index,
    select_reference_points,
)

__all__ = [
    "FitOrchestrator",
    "PerMuonFitPolicy",
    "ConstraintFitAdapter",
    "FitService",
    "default_fit_service",
    "constrain_track",
    "TrackState",
    "Muon",
    "BeamSpot",
    "PrimaryVertex",
    "ReferencePoint",
    "FitOutcome",
    "MuonFitResult",
    "EventInput",
    "EventFitResult",
    "ConstraintConfig",
    "ReferenceSelection",
    "select_reference_points",
    "best_scored_vertex_index",
    "beam_quality_ok",
]
