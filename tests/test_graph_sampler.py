"""Tests for graph_sampler.py - 2D series and 3D meshes."""

import math

import pytest

from stepcalc.errors import RangeError
from stepcalc.graph_sampler import (
    DEFAULT_RANGE,
    GraphSampler,
    reset_range,
    validate_range,
    zoom_in,
    zoom_out,
)
from stepcalc.result import OperationType


class TestRangeTransforms:
    """Tests for zoom and reset helpers."""

    def test_zoom_in_default(self):
        """Test zooming in on [-10, 10] gives width 14."""
        low, high = zoom_in(DEFAULT_RANGE)
        assert low == pytest.approx(-7.0)
        assert high == pytest.approx(7.0)
        assert high - low == pytest.approx(14.0)

    def test_zoom_out_default(self):
        """Test zooming out on [-10, 10] gives width 26."""
        low, high = zoom_out(DEFAULT_RANGE)
        assert (low, high) == (pytest.approx(-13.0), pytest.approx(13.0))

    def test_zoom_keeps_center(self):
        """Test zoom is centered on the range midpoint."""
        low, high = zoom_in((0.0, 10.0))
        assert (low + high) / 2 == pytest.approx(5.0)

    def test_zoom_in_then_out_not_identity(self):
        """Test 0.7 * 1.3 != 1 so zooming back does not restore the range."""
        low, high = zoom_out(zoom_in(DEFAULT_RANGE))
        assert high - low == pytest.approx(20.0 * 0.7 * 1.3)

    def test_reset(self):
        """Test reset returns the default range."""
        assert reset_range() == (-10.0, 10.0)


class TestValidateRange:
    """Tests for validate_range function."""

    def test_valid(self):
        """Test ints are converted to floats."""
        assert validate_range([-1, 2]) == (-1.0, 2.0)

    @pytest.mark.parametrize(
        "bad",
        [(1.0, 1.0), (2.0, -2.0), (0.0, math.inf), (math.nan, 1.0), ("a", 1), (1.0,)],
    )
    def test_invalid(self, bad):
        """Test empty, inverted, non-finite and malformed ranges."""
        with pytest.raises(RangeError):
            validate_range(bad)


class TestSampleSeries:
    """Tests for 2D sampling."""

    def test_point_count(self):
        """Test steps + 1 points for a function defined everywhere."""
        series = GraphSampler(steps=200).sample_series("x^2")
        assert len(series) == 201
        assert series.x[0] == -10.0
        assert series.x[-1] == pytest.approx(10.0)

    def test_reciprocal_drops_zero(self):
        """Test 1/x drops the undefined point at x = 0."""
        series = GraphSampler(steps=2).sample_series("1/x", (-1.0, 1.0))
        assert series.x == [-1.0, 1.0]
        assert series.y == [-1.0, 1.0]

    def test_reciprocal_default_domain(self):
        """Test 1/x over [-10, 10] in 200 steps stays finite on both sides of 0."""
        sampler = GraphSampler()
        assert sampler.steps == 200
        series = sampler.sample_series("1/x", (-10.0, 10.0))
        assert all(math.isfinite(y) for y in series.y)
        assert 0.0 not in series.x
        assert any(x < 0 for x in series.x)
        assert any(x > 0 for x in series.x)
        assert len(series) <= 201

    def test_sqrt_drops_negative_domain(self):
        """Test sqrt(x) keeps only x >= 0."""
        series = GraphSampler(steps=2).sample_series("sqrt(x)", (-1.0, 1.0))
        assert series.x == [0.0, 1.0]

    def test_all_points_finite(self):
        """Test no returned point is NaN or infinite."""
        series = GraphSampler(steps=50).sample_series("log(x)", (-5.0, 5.0))
        assert all(math.isfinite(y) for y in series.y)
        assert all(x > 0 for x in series.x)

    def test_invalid_steps(self):
        """Test the sampler needs at least one step."""
        with pytest.raises(ValueError):
            GraphSampler(steps=0)


class TestSampleMesh:
    """Tests for 3D sampling."""

    def test_shape(self):
        """Test (d + 1) x (d + 1) grid with full rows."""
        mesh = GraphSampler(surface_divisions=4).sample_mesh("x * y", (-1.0, 1.0))
        assert mesh.shape == (5, 5)
        assert len(mesh.z) == 5
        assert all(len(row) == 5 for row in mesh.z)

    def test_undefined_become_zero(self):
        """Test undefined values are replaced by 0, keeping the shape."""
        mesh = GraphSampler(surface_divisions=2).sample_mesh("1/x + y", (-1.0, 1.0))
        assert mesh.shape == (3, 3)
        assert mesh.z[1] == [0.0, 0.0, 0.0]
        assert mesh.z[2] == [0.0, 1.0, 2.0]

    def test_default_mesh_size(self):
        """Test default 30 divisions give a 31 x 31 mesh."""
        mesh = GraphSampler().sample_mesh("x + y")
        assert mesh.shape == (31, 31)


class TestSampleResults:
    """Tests for sample_2d and sample_3d results."""

    def test_2d_result(self):
        """Test graph result with plot data and steps."""
        result = GraphSampler(steps=10).sample_2d("x^2", (-1.0, 1.0))
        assert result.ok
        assert result.operation_type == OperationType.GRAPH
        assert result.result == "Graph generated: 11 points"
        assert result.graph_data["type"] == "scatter"
        assert result.graph_data["mode"] == "lines"
        assert result.steps == [
            "Function: f(x) = x^2",
            "Domain: [-1, 1]",
            "Data points: 11",
        ]

    def test_2d_invalid_range(self):
        """Test a bad range becomes an error result."""
        result = GraphSampler().sample_2d("x", (5.0, 1.0))
        assert not result.ok
        assert result.error.startswith("Graph error: ")
        assert result.graph_data is None

    def test_2d_unknown_identifier(self):
        """Test expressions with unknown names fail as a whole."""
        result = GraphSampler().sample_2d("x + q")
        assert not result.ok
        assert "q" in result.error

    def test_3d_result(self):
        """Test surface result."""
        result = GraphSampler(surface_divisions=2).sample_3d("x + y", (0.0, 2.0))
        assert result.ok
        assert result.graph_data["type"] == "surface"
        assert result.result == "Surface generated: 9 points"
        assert result.steps[-1] == "Mesh: 3 x 3"

    def test_3d_error_prefix(self):
        """Test surface failures use their own prefix."""
        result = GraphSampler().sample_3d("x +* y")
        assert result.error.startswith("3D graph error: ")
