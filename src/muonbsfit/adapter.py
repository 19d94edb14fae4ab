"""Stable call wrapper around the single-track constrained-fit service."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Callable

from .models import ConstraintConfig, FitOutcome, ReferencePoint, TrackState
from .physics import constrain_track

LOGGER = logging.getLogger(__name__)

FitService = Callable[[TrackState, ReferencePoint], FitOutcome]


def default_fit_service(config: ConstraintConfig | None = None) -> FitService:
    """Return the built-in linearised constraint fit configured from `config`."""
    config = config or ConstraintConfig()
    return partial(constrain_track, max_chi2=config.max_chi2)


@dataclass
class ConstraintFitAdapter:
    """Turn one `(track, reference)` pair into a `FitOutcome`.

    Non-convergence is a normal outcome: the adapter never retries and never
    lets a numerical error from the service escape.
    """

    service: FitService = field(default_factory=default_fit_service)

    def fit(self, track: TrackState, reference: ReferencePoint) -> FitOutcome:
        """Attempt one constrained refit of `track` against `reference`."""
        if reference.is_degenerate:
            return FitOutcome.failed("degenerate_reference")
        try:
            outcome = self.service(track, reference)
        except (ArithmeticError, ValueError) as exc:
            LOGGER.debug("Constraint fit of %s raised %r; treating as failure.", track.track_id, exc)
            return FitOutcome.failed("error")
        if outcome.success and outcome.track is None:
            return FitOutcome.failed("missing_track")
        return outcome
