"""Calculation engine for StepCalc.

Orchestrates the normalizer, the math capability, the statistics and matrix
engines and the graph sampler behind one contract: every operation returns a
CalculationResult and never raises.

Step traces follow the same shape for every operation:
1) what was submitted
2) which operation was applied
3) the final value
"""

import json
import logging
from typing import List, Optional, Sequence, Tuple

from .backend import MathCapability, SympyBackend, format_number
from .config import CalculatorConfig
from .errors import CalculatorError, EvaluationError
from .graph_sampler import GraphSampler
from .matrix_engine import MatrixEngine, format_matrix
from .normalizer import is_valid_expression, normalize
from .result import CalculationResult, OperationType
from .stats_engine import summarize


logger = logging.getLogger(__name__)

# Errors the backend may leak besides our own taxonomy.
_BOUNDARY_ERRORS = (CalculatorError, ArithmeticError, ValueError, TypeError)


class CalculationEngine:
    """Turns user input into CalculationResults."""

    def __init__(
        self,
        backend: Optional[MathCapability] = None,
        sampler: Optional[GraphSampler] = None,
        config: Optional[CalculatorConfig] = None,
    ):
        """Initialize engine.

        Args:
            backend: Math capability (defaults to SympyBackend).
            sampler: Graph sampler (built from ``config`` when omitted).
            config: Calculator configuration.
        """
        self.config = config or CalculatorConfig()
        self.backend = backend or SympyBackend()
        self.sampler = sampler or GraphSampler(
            self.backend,
            steps=self.config.graph_steps,
            surface_divisions=self.config.surface_divisions,
        )
        self.matrices = MatrixEngine(self.backend)

    def _fail(self, expression: str, operation_type: OperationType, prefix: str, exc: Exception):
        logger.warning("%s failed for %r: %s", operation_type.value, expression, exc)
        return CalculationResult.failure(expression, operation_type, f"{prefix}: {exc}")

    # --- Arithmetic ---

    def evaluate_expression(self, raw: str) -> CalculationResult:
        """Normalize and evaluate an arithmetic expression."""
        try:
            if raw.strip() and not is_valid_expression(raw):
                raise EvaluationError(f"Unsupported characters in expression: {raw}")
            canonical = normalize(raw)
            value = self.backend.evaluate(canonical)
        except _BOUNDARY_ERRORS as e:
            return self._fail(raw, OperationType.BASIC, "Calculation error", e)

        text = _format_value(value)
        return CalculationResult(
            expression=canonical,
            result=text,
            steps=[
                f"Input: {raw}",
                f"Normalized: {canonical}",
                f"Result: {text}",
            ],
            operation_type=OperationType.BASIC,
        )

    # --- Calculus ---

    def calculate_derivative(self, expression: str, variable: str = "x") -> CalculationResult:
        """Differentiate ``expression``; the result is always simplified."""
        try:
            derivative = self.backend.differentiate(normalize(expression), variable)
        except _BOUNDARY_ERRORS as e:
            return self._fail(expression, OperationType.DERIVATIVE, "Derivative error", e)

        return CalculationResult(
            expression=expression,
            result=derivative,
            steps=[
                f"Function: f({variable}) = {expression}",
                f"Differentiate: d/d{variable}({expression})",
                f"Derivative: f'({variable}) = {derivative}",
            ],
            operation_type=OperationType.DERIVATIVE,
        )

    def calculate_integral(self, expression: str, variable: str = "x") -> CalculationResult:
        """Integrate ``expression``. No constant of integration is added."""
        try:
            integral = self.backend.integrate(normalize(expression), variable)
        except _BOUNDARY_ERRORS as e:
            return self._fail(expression, OperationType.INTEGRAL, "Integral error", e)

        return CalculationResult(
            expression=expression,
            result=integral,
            steps=[
                f"Integrand: f({variable}) = {expression}",
                f"Integrate: ∫{expression} d{variable}",
                f"Integral: F({variable}) = {integral}",
            ],
            operation_type=OperationType.INTEGRAL,
        )

    def solve_equation(self, equation: str, variable: str = "x") -> CalculationResult:
        """Solve ``equation`` for ``variable``.

        Solutions are listed real-first in ascending order, then the rest.
        """
        try:
            solutions = self.backend.solve(normalize(equation), variable)
        except _BOUNDARY_ERRORS as e:
            return self._fail(equation, OperationType.EQUATION, "Equation error", e)

        text = "[" + ", ".join(solutions) + "]"
        return CalculationResult(
            expression=equation,
            result=text,
            steps=[
                f"Equation: {equation}",
                f"Solve for {variable}",
                f"Solutions: {variable} = {text}",
            ],
            operation_type=OperationType.EQUATION,
        )

    # --- Statistics and matrices ---

    def calculate_statistics(self, data: Sequence[float]) -> CalculationResult:
        """Mean, population variance, standard deviation, min, max, count and median."""
        values = list(data)
        expression = f"stats([{', '.join(format_number(v) for v in values)}])"
        try:
            summary, steps = summarize(values)
        except _BOUNDARY_ERRORS as e:
            return self._fail(expression, OperationType.STATISTICS, "Statistics error", e)

        return CalculationResult(
            expression=expression,
            result=json.dumps(summary.to_dict(), indent=2),
            steps=steps,
            operation_type=OperationType.STATISTICS,
        )

    def calculate_matrix(
        self,
        operation: str,
        a: List[List[float]],
        b: Optional[List[List[float]]] = None,
    ) -> CalculationResult:
        """Run ``operation`` (add, multiply, determinant, inverse, transpose)."""
        expression = f"matrix_{operation}"
        try:
            value, steps = self.matrices.compute(operation, a, b)
        except _BOUNDARY_ERRORS as e:
            return self._fail(expression, OperationType.MATRIX, "Matrix error", e)

        if isinstance(value, list):
            text = json.dumps(value, indent=2)
        else:
            text = format_number(value)
        return CalculationResult(
            expression=expression,
            result=text,
            steps=steps,
            operation_type=OperationType.MATRIX,
        )

    # --- Graphs ---

    def generate_graph(
        self, expression: str, x_range: Tuple[float, float] = (-10.0, 10.0)
    ) -> CalculationResult:
        """Sample a 2D line series of f(x)."""
        return self.sampler.sample_2d(normalize(expression), x_range)

    def generate_surface(
        self, expression: str, value_range: Tuple[float, float] = (-10.0, 10.0)
    ) -> CalculationResult:
        """Sample a 3D surface of f(x, y)."""
        return self.sampler.sample_3d(normalize(expression), value_range)


def _format_value(value) -> str:
    if isinstance(value, list):
        return format_matrix(value)
    return format_number(value)
