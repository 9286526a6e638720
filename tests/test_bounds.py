"""Tests for bounding boxes and display normalization."""

import numpy as np
import pytest

from meshport.scene.bounds import (
    BoundingBox,
    Normalization,
    ScaleInfo,
    compute_bounds,
    compute_normalization,
)


class TestBoundingBox:
    """Test BoundingBox construction and properties."""

    def test_from_points(self):
        """Test the box is the componentwise min/max."""
        box = BoundingBox.from_points(np.array([[0, 5, -1], [2, 1, 3], [1, 1, 1]]))

        assert box.min == (0.0, 1.0, -1.0)
        assert box.max == (2.0, 5.0, 3.0)
        assert not box.is_placeholder

    def test_size_and_center(self):
        """Test derived dimensions."""
        box = BoundingBox(min=(0.0, 0.0, 0.0), max=(4.0, 2.0, 1.0))

        np.testing.assert_array_equal(box.size, [4.0, 2.0, 1.0])
        np.testing.assert_array_equal(box.center, [2.0, 1.0, 0.5])
        assert box.max_extent == 4.0

    def test_placeholder(self):
        """Test the placeholder is a flagged unit box at the origin."""
        box = BoundingBox.placeholder()

        assert box.is_placeholder
        np.testing.assert_array_equal(box.size, [1.0, 1.0, 1.0])
        np.testing.assert_array_equal(box.center, [0.0, 0.0, 0.0])

    def test_union(self):
        """Test union ignores placeholders."""
        a = BoundingBox(min=(0.0, 0.0, 0.0), max=(1.0, 1.0, 1.0))
        b = BoundingBox(min=(-1.0, 0.5, 0.0), max=(0.5, 3.0, 1.0))

        assert a.union(b).min == (-1.0, 0.0, 0.0)
        assert a.union(b).max == (1.0, 3.0, 1.0)
        assert BoundingBox.placeholder().union(a) == a


class TestComputeBounds:
    """Test bounds over several primitives."""

    def test_union_of_sets(self):
        """Test bounds cover every point of every set."""
        box = compute_bounds([np.array([[0, 0, 0]]), np.array([[1, 2, 3], [-1, 0, 0]])])
        assert box.min == (-1.0, 0.0, 0.0)
        assert box.max == (1.0, 2.0, 3.0)

    def test_contains_every_vertex(self):
        """Test no vertex lies outside the computed box."""
        rng = np.random.default_rng(3)
        sets = [rng.normal(size=(50, 3)) * 10 for _ in range(4)]
        box = compute_bounds(sets)

        for points in sets:
            assert np.all(points >= np.array(box.min))
            assert np.all(points <= np.array(box.max))

    def test_empty_returns_placeholder(self):
        """Test no vertices gives the placeholder box."""
        assert compute_bounds([]).is_placeholder
        assert compute_bounds([np.empty((0, 3))]).is_placeholder


class TestNormalization:
    """Test the display normalization."""

    def test_wide_model(self):
        """Test a 200-unit model fits a 4-unit display volume."""
        box = BoundingBox(min=(0.0, 0.0, 0.0), max=(200.0, 50.0, 20.0))
        norm = compute_normalization(box, target_extent=4.0)

        assert norm.scale == pytest.approx(0.02)
        np.testing.assert_allclose(norm.offset, [-2.0, -0.5, -0.2])

    def test_normalized_extent_and_center(self):
        """Test the normalized box has the target extent and sits at the origin."""
        box = BoundingBox(min=(-3.0, 10.0, 7.0), max=(5.0, 12.0, 8.0))
        norm = compute_normalization(box, target_extent=4.0)
        result = norm.apply_to_bounds(box)

        assert result.max_extent == pytest.approx(4.0)
        np.testing.assert_allclose(result.center, [0.0, 0.0, 0.0], atol=1e-12)

    @pytest.mark.parametrize("k", [0.001, 0.5, 2.0, 10.0, 250.0])
    def test_scale_inverse_to_model_size(self, k):
        """Test scaling the model by k divides the display scale by k."""
        points = np.array([[-3.0, 10.0, 7.0], [5.0, 12.0, 8.0], [1.0, 11.5, 7.25]])
        box = BoundingBox.from_points(points)
        scaled = BoundingBox.from_points(points * k)

        base = compute_normalization(box)
        norm = compute_normalization(scaled)

        assert norm.scale == pytest.approx(base.scale / k)
        np.testing.assert_allclose(
            norm.apply_to_bounds(scaled).size, base.apply_to_bounds(box).size
        )

    def test_zero_extent(self):
        """Test a single point does not divide by zero."""
        box = BoundingBox(min=(1.0, 1.0, 1.0), max=(1.0, 1.0, 1.0))
        norm = compute_normalization(box)

        assert norm.scale == 1.0
        np.testing.assert_allclose(norm.offset, [-1.0, -1.0, -1.0])

    def test_apply(self):
        """Test points are scaled, then offset."""
        norm = Normalization(scale=2.0, offset=(1.0, 0.0, 0.0))
        np.testing.assert_array_equal(norm.apply(np.array([[1.0, 1.0, 1.0]])), [[3.0, 2.0, 2.0]])

    def test_identity(self):
        """Test the identity normalization leaves points alone."""
        points = np.array([[1.5, -2.0, 3.0]])
        np.testing.assert_array_equal(Normalization.identity().apply(points), points)


class TestScaleInfo:
    """Test reported dimensions."""

    def test_dimensions_rounded(self):
        """Test authored, displayed and exported sizes."""
        box = BoundingBox(min=(0.0, 0.0, 0.0), max=(200.0, 50.0, 20.04))
        info = ScaleInfo.from_bounds(box, display_scale=0.02, export_scale=0.1, units="cm")

        assert info.original == (200.0, 50.0, 20.0)
        assert info.displayed == (4.0, 1.0, 0.4)
        assert info.exported == (20.0, 5.0, 2.0)
        assert info.units == "cm"
