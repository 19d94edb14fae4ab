"""Event-level driver producing the constrained pt/ptErr sequences."""

from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Sequence

from .adapter import ConstraintFitAdapter, FitService, default_fit_service
from .models import (
    BeamSpot,
    ConstraintConfig,
    EventInput,
    Muon,
    MuonFitResult,
    PrimaryVertex,
)
from .policy import PerMuonFitPolicy
from .selector import ReferenceSelection, select_reference_points

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventFitResult:
    """Per-muon results of one event, in muon-collection order."""

    event_id: str
    results: tuple[MuonFitResult, ...]
    selection: ReferenceSelection

    @property
    def pts(self) -> list[float]:
        return [r.pt for r in self.results]

    @property
    def pt_errs(self) -> list[float]:
        return [r.pt_err for r in self.results]


@dataclass
class FitOrchestrator:
    """Apply the per-muon policy to every muon of an event.

    Output sequences always have one entry per input muon, in input order.
    """

    config: ConstraintConfig = field(default_factory=ConstraintConfig)
    service: FitService | None = None

    def __post_init__(self) -> None:
        service = self.service if self.service is not None else default_fit_service(self.config)
        self.policy = PerMuonFitPolicy(adapter=ConstraintFitAdapter(service=service))

    def run(
        self,
        muons: Sequence[Muon],
        beam_spot: BeamSpot | None,
        vertices: Sequence[PrimaryVertex],
        scores: Sequence[float],
    ) -> tuple[list[float], list[float]]:
        """Return `(pts, pt_errs)` index-aligned with `muons`."""
        results = self.run_detailed(muons, beam_spot, vertices, scores)
        return [r.pt for r in results], [r.pt_err for r in results]

    def run_detailed(
        self,
        muons: Sequence[Muon],
        beam_spot: BeamSpot | None,
        vertices: Sequence[PrimaryVertex],
        scores: Sequence[float],
    ) -> list[MuonFitResult]:
        """Like `run`, but keep the source and chi2 of each result."""
        selection = select_reference_points(beam_spot, vertices, scores, self.config)
        return self._resolve_all(muons, selection)

    def run_event(self, event: EventInput) -> EventFitResult:
        """Process one `EventInput`."""
        selection = select_reference_points(
            event.beam_spot, event.vertices, event.vertex_scores, self.config
        )
        results = self._resolve_all(event.muons, selection)
        return EventFitResult(event_id=event.event_id, results=tuple(results), selection=selection)

    def run_events(
        self,
        events: Sequence[EventInput],
        max_workers: int | None = None,
    ) -> list[EventFitResult]:
        """Process events independently, optionally on a thread pool.

        Results are returned in the order of `events`.
        """
        if max_workers is not None and max_workers > 1 and len(events) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as ex:
                out = list(ex.map(self.run_event, events))
        else:
            out = [self.run_event(event) for event in events]
        counts: Counter[str] = Counter(r.source for ev in out for r in ev.results)
        LOGGER.info(
            "Processed %d events, %d muons (beamspot=%d, vertex=%d, fallback=%d).",
            len(out),
            sum(counts.values()),
            counts["beamspot"],
            counts["vertex"],
            counts["fallback"],
        )
        return out

    def _resolve_all(self, muons: Sequence[Muon], selection: ReferenceSelection) -> list[MuonFitResult]:
        return [
            self.policy.resolve(
                muon,
                selection.beam_reference,
                selection.beam_quality_ok,
                selection.vertex_reference,
            )
            for muon in muons
        ]
