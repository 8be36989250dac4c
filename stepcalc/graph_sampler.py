"""Graph sampling for 2D line plots and 3D surfaces.

Produces plot-ready data from a one- or two-variable expression. The two
sampling modes treat undefined points differently:
- 2D drops the point, so the series may have gaps and fewer points
- 3D substitutes 0, so the mesh always keeps its full grid shape
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .backend import MathCapability, SympyBackend
from .errors import CalculatorError, RangeError
from .result import CalculationResult, OperationType


logger = logging.getLogger(__name__)

Range = Tuple[float, float]

DEFAULT_RANGE: Range = (-10.0, 10.0)
DEFAULT_STEPS = 200
DEFAULT_SURFACE_DIVISIONS = 30

ZOOM_IN_FACTOR = 0.7
ZOOM_OUT_FACTOR = 1.3

LINE_STYLE = {"color": "#3B82F6", "width": 2}
SURFACE_COLORSCALE = [
    [0, "#0d47a1"],
    [0.2, "#1976d2"],
    [0.4, "#42a5f5"],
    [0.6, "#81c784"],
    [0.8, "#ffeb3b"],
    [1, "#f44336"],
]


@dataclass
class GraphSeries:
    """A 2D line series."""

    x: List[float] = field(default_factory=list)
    y: List[float] = field(default_factory=list)
    name: str = ""

    def __len__(self) -> int:
        return len(self.x)

    def to_plot_data(self) -> dict:
        return {
            "x": list(self.x),
            "y": list(self.y),
            "type": "scatter",
            "mode": "lines",
            "name": self.name,
            "line": dict(LINE_STYLE),
        }


@dataclass
class SurfaceMesh:
    """A 3D surface sampled on a uniform grid; ``z[i][j]`` is f(x[i], y[j])."""

    x: List[float] = field(default_factory=list)
    y: List[float] = field(default_factory=list)
    z: List[List[float]] = field(default_factory=list)
    name: str = ""

    @property
    def shape(self) -> Tuple[int, int]:
        return (len(self.x), len(self.y))

    def to_plot_data(self) -> dict:
        return {
            "x": list(self.x),
            "y": list(self.y),
            "z": [list(row) for row in self.z],
            "type": "surface",
            "name": self.name,
            "colorscale": [list(stop) for stop in SURFACE_COLORSCALE],
            "showscale": True,
            "hovertemplate": "x: %{x}<br>y: %{y}<br>z: %{z}<extra></extra>",
        }


# --- Range transforms ---


def validate_range(value_range) -> Range:
    """Return ``value_range`` as a float pair.

    Raises:
        RangeError: If the range is not two finite numbers with min < max.
    """
    try:
        low, high = (float(v) for v in value_range)
    except (TypeError, ValueError) as exc:
        raise RangeError(f"Invalid range: {value_range!r}") from exc

    if not (math.isfinite(low) and math.isfinite(high)):
        raise RangeError(f"Range bounds must be finite: [{low}, {high}]")
    if low >= high:
        raise RangeError(f"Range minimum must be below maximum: [{low}, {high}]")
    return (low, high)


def _scale_range(value_range: Range, factor: float) -> Range:
    low, high = value_range
    center = (low + high) / 2
    half_width = (high - low) * factor / 2
    return (center - half_width, center + half_width)


def zoom_in(value_range: Range) -> Range:
    """Shrink the range to 70% of its width around its center."""
    return _scale_range(value_range, ZOOM_IN_FACTOR)


def zoom_out(value_range: Range) -> Range:
    """Grow the range to 130% of its width around its center."""
    return _scale_range(value_range, ZOOM_OUT_FACTOR)


def reset_range() -> Range:
    """Return the default plotting range."""
    return DEFAULT_RANGE


def _finite_float(value) -> Optional[float]:
    """Return ``value`` as a finite real float, or None if it is not one."""
    try:
        as_complex = complex(value)
    except (TypeError, ValueError):
        return None
    if as_complex.imag != 0 or not math.isfinite(as_complex.real):
        return None
    return as_complex.real


def _format_bound(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class GraphSampler:
    """Samples expressions into plot series and meshes."""

    def __init__(
        self,
        backend: Optional[MathCapability] = None,
        steps: int = DEFAULT_STEPS,
        surface_divisions: int = DEFAULT_SURFACE_DIVISIONS,
    ):
        """Initialize sampler.

        Args:
            backend: Math capability used to compile expressions.
            steps: Number of equal steps the 2D domain is split into.
            surface_divisions: Subdivisions per axis for 3D meshes.
        """
        if steps < 1 or surface_divisions < 1:
            raise ValueError("steps and surface_divisions must be positive")
        self.backend = backend or SympyBackend()
        self.steps = steps
        self.surface_divisions = surface_divisions

    def sample_series(self, expression: str, x_range: Range = DEFAULT_RANGE) -> GraphSeries:
        """Sample ``expression`` over ``x_range``, dropping undefined points.

        Raises:
            CalculatorError: If the range is invalid or the expression
                does not compile. Individual points never raise.
        """
        low, high = validate_range(x_range)
        func = self.backend.compile(expression, ("x",))

        step_size = (high - low) / self.steps
        series = GraphSeries(name=f"f(x) = {expression}")
        dropped = 0

        for i in range(self.steps + 1):
            x = low + i * step_size
            try:
                y = _finite_float(func(x))
            except (ArithmeticError, ValueError, TypeError):
                y = None
            if y is None:
                dropped += 1
                continue
            series.x.append(x)
            series.y.append(y)

        if dropped:
            logger.debug("Dropped %d undefined points sampling %s", dropped, expression)
        return series

    def sample_mesh(self, expression: str, value_range: Range = DEFAULT_RANGE) -> SurfaceMesh:
        """Sample ``expression`` in x and y over a square grid.

        Undefined values become 0 so that every row has ``len(y)`` entries.
        """
        low, high = validate_range(value_range)
        func = self.backend.compile(expression, ("x", "y"))

        step_size = (high - low) / self.surface_divisions
        axis = [low + i * step_size for i in range(self.surface_divisions + 1)]
        mesh = SurfaceMesh(x=list(axis), y=list(axis), name=f"f(x, y) = {expression}")

        substituted = 0
        for x in mesh.x:
            row = []
            for y in mesh.y:
                try:
                    z = _finite_float(func(x, y))
                except (ArithmeticError, ValueError, TypeError):
                    z = None
                if z is None:
                    substituted += 1
                    z = 0.0
                row.append(z)
            mesh.z.append(row)

        if substituted:
            logger.debug("Substituted 0 for %d undefined mesh values of %s", substituted, expression)
        return mesh

    def sample_2d(self, expression: str, x_range: Range = DEFAULT_RANGE) -> CalculationResult:
        """Produce a ``graph`` result with a line series for ``expression``."""
        try:
            series = self.sample_series(expression, x_range)
        except CalculatorError as e:
            logger.warning("Graph generation failed for %r: %s", expression, e)
            return CalculationResult.failure(
                expression, OperationType.GRAPH, f"Graph error: {e}"
            )

        low, high = validate_range(x_range)
        steps = [
            f"Function: f(x) = {expression}",
            f"Domain: [{_format_bound(low)}, {_format_bound(high)}]",
            f"Data points: {len(series)}",
        ]
        return CalculationResult(
            expression=expression,
            result=f"Graph generated: {len(series)} points",
            steps=steps,
            operation_type=OperationType.GRAPH,
            graph_data=series.to_plot_data(),
        )

    def sample_3d(self, expression: str, value_range: Range = DEFAULT_RANGE) -> CalculationResult:
        """Produce a ``graph`` result with a surface mesh for ``expression``."""
        try:
            mesh = self.sample_mesh(expression, value_range)
        except CalculatorError as e:
            logger.warning("Surface generation failed for %r: %s", expression, e)
            return CalculationResult.failure(
                expression, OperationType.GRAPH, f"3D graph error: {e}"
            )

        low, high = validate_range(value_range)
        domain = f"[{_format_bound(low)}, {_format_bound(high)}]"
        rows, cols = mesh.shape
        steps = [
            f"Function: f(x, y) = {expression}",
            f"Domain: {domain} x {domain}",
            f"Mesh: {rows} x {cols}",
        ]
        return CalculationResult(
            expression=expression,
            result=f"Surface generated: {rows * cols} points",
            steps=steps,
            operation_type=OperationType.GRAPH,
            graph_data=mesh.to_plot_data(),
        )
