"""Unit tests for beam-spot quality gating and best-vertex selection."""

from __future__ import annotations

import math
import unittest

from muonbsfit import BeamSpot, ConstraintConfig, PrimaryVertex, ReferencePoint
from muonbsfit.selector import (
    beam_quality_ok,
    best_scored_vertex_index,
    reference_from_beam_spot,
    select_reference_points,
)


def _beam_spot(**overrides) -> BeamSpot:
    """Create a narrow, well-measured beam spot."""
    fields = dict(
        x=0.1,
        y=-0.2,
        z=0.5,
        width_x=0.01,
        width_y=0.01,
        width_x_error=0.001,
        width_y_error=0.001,
        sigma_z=3.5,
    )
    fields.update(overrides)
    return BeamSpot(**fields)


def _vertices(n: int) -> list[PrimaryVertex]:
    """Create `n` vertices spaced along z."""
    cov3 = ((1e-4, 0.0, 0.0), (0.0, 1e-4, 0.0), (0.0, 0.0, 1e-3))
    return [PrimaryVertex(f"pv{i}", x=0.0, y=0.0, z=float(i), cov3=cov3) for i in range(n)]


class TestVertexSelection(unittest.TestCase):
    """Validate argmax-by-score with first-maximum tie-break."""

    def test_first_maximum_wins_on_ties(self) -> None:
        """Equal later scores must not replace the earliest maximum."""
        self.assertEqual(best_scored_vertex_index([0.5, 0.9, 0.9, 0.3]), 1)
        selection = select_reference_points(_beam_spot(), _vertices(4), [0.5, 0.9, 0.9, 0.3])
        self.assertEqual(selection.vertex_index, 1)
        self.assertEqual(selection.vertex_reference.kind, "vertex")
        self.assertEqual(selection.vertex_reference.source_id, "pv1")
        self.assertEqual(selection.vertex_reference.z, 1.0)

    def test_non_positive_scores_select_nothing(self) -> None:
        """With no score above zero the default reference is used."""
        self.assertIsNone(best_scored_vertex_index([0.0, -1.0, 0.0]))
        selection = select_reference_points(_beam_spot(), _vertices(3), [0.0, -1.0, 0.0])
        self.assertIsNone(selection.vertex_index)
        self.assertEqual(selection.vertex_reference, ReferencePoint.default())
        self.assertTrue(selection.vertex_reference.is_degenerate)

    def test_empty_vertex_collection(self) -> None:
        """An empty collection is a normal degenerate case."""
        selection = select_reference_points(_beam_spot(), [], [])
        self.assertIsNone(selection.vertex_index)
        self.assertEqual(selection.vertex_reference.kind, "default")

    def test_pairing_is_positional_when_lengths_differ(self) -> None:
        """A score without a vertex at its index is never selected."""
        with self.assertLogs("muonbsfit.selector", level="WARNING"):
            selection = select_reference_points(_beam_spot(), _vertices(2), [0.2, 0.4, 5.0])
        self.assertEqual(selection.vertex_index, 1)
        self.assertEqual(selection.vertex_reference.source_id, "pv1")


class TestBeamQuality(unittest.TestCase):
    """Validate the 30% relative-width-uncertainty gate."""

    def test_ratio_exactly_at_threshold_passes(self) -> None:
        """Only ratios strictly above the threshold fail."""
        bs = _beam_spot(width_x=1.0, width_x_error=0.3, width_y=1.0, width_y_error=0.1)
        self.assertTrue(beam_quality_ok(bs))

    def test_ratio_above_threshold_fails(self) -> None:
        """Either transverse direction can fail the gate."""
        self.assertFalse(beam_quality_ok(_beam_spot(width_x=1.0, width_x_error=0.31)))
        self.assertFalse(beam_quality_ok(_beam_spot(width_y=1.0, width_y_error=0.31)))

    def test_zero_width_is_not_ok(self) -> None:
        """A zero denominator resolves to 'not OK' without raising."""
        self.assertFalse(beam_quality_ok(_beam_spot(width_x=0.0, width_x_error=0.001)))
        self.assertFalse(beam_quality_ok(_beam_spot(width_y=0.0, width_y_error=0.0)))

    def test_near_zero_and_non_finite_widths_are_not_ok(self) -> None:
        """Widths at or below `min_width` and non-finite inputs fail the gate."""
        self.assertFalse(beam_quality_ok(_beam_spot(width_x=1e-13, width_x_error=0.0)))
        self.assertFalse(beam_quality_ok(_beam_spot(width_y=1e-13, width_y_error=1e-14)))
        self.assertFalse(beam_quality_ok(_beam_spot(width_x=math.inf)))
        self.assertFalse(beam_quality_ok(_beam_spot(width_x_error=math.nan)))
        self.assertFalse(beam_quality_ok(_beam_spot(width_y_error=math.inf)))

    def test_invalid_or_absent_beam_spot_is_not_ok(self) -> None:
        """Missing beam spots never pass the gate."""
        self.assertFalse(beam_quality_ok(None))
        self.assertFalse(beam_quality_ok(_beam_spot(valid=False)))
        selection = select_reference_points(None, _vertices(1), [1.0])
        self.assertFalse(selection.beam_quality_ok)
        self.assertEqual(selection.beam_reference.kind, "default")

    def test_configurable_threshold(self) -> None:
        """The gate threshold comes from `ConstraintConfig`."""
        bs = _beam_spot(width_x=1.0, width_x_error=0.4)
        self.assertFalse(beam_quality_ok(bs))
        self.assertTrue(beam_quality_ok(bs, ConstraintConfig(max_relative_width_error=0.5)))

    def test_beam_reference_adds_widths_to_covariance(self) -> None:
        """The beam reference covariance carries the luminous-region widths."""
        ref = reference_from_beam_spot(_beam_spot())
        self.assertEqual(ref.kind, "beamspot")
        self.assertEqual((ref.x, ref.y, ref.z), (0.1, -0.2, 0.5))
        self.assertAlmostEqual(ref.cov3[0][0], 1e-4, places=15)
        self.assertAlmostEqual(ref.cov3[1][1], 1e-4, places=15)
        self.assertAlmostEqual(ref.cov3[2][2], 3.5 * 3.5, places=12)


if __name__ == "__main__":
    unittest.main()
