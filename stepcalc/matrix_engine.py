"""Matrix operations.

Shape checks happen here; the arithmetic itself is delegated to the math
capability through matrix-literal expressions such as
``det(Matrix([[1, 2], [3, 4]]))``.
"""

import json
import math
from typing import List, Optional, Sequence, Tuple, Union

from .backend import MathCapability, format_number
from .errors import DimensionError, EvaluationError, MissingOperandError


Matrix = List[List[float]]

BINARY_OPERATIONS = ("add", "multiply")
UNARY_OPERATIONS = ("determinant", "inverse", "transpose")
MATRIX_OPERATIONS = BINARY_OPERATIONS + UNARY_OPERATIONS


def matrix_shape(matrix: Sequence[Sequence[float]], label: str = "A") -> Tuple[int, int]:
    """Return (rows, cols) of a rectangular matrix.

    Raises:
        DimensionError: If the matrix is empty or ragged.
        EvaluationError: If an entry is not a finite number.
    """
    if not matrix or not all(isinstance(row, (list, tuple)) and row for row in matrix):
        raise DimensionError(f"Matrix {label} must have at least one non-empty row")

    cols = len(matrix[0])
    if any(len(row) != cols for row in matrix):
        raise DimensionError(f"Matrix {label} rows must all have the same length")

    for row in matrix:
        for cell in row:
            if isinstance(cell, bool) or not isinstance(cell, (int, float)) or not math.isfinite(cell):
                raise EvaluationError(f"Matrix {label} has a non-numeric entry: {cell!r}")
    return (len(matrix), cols)


def matrix_literal(matrix: Sequence[Sequence[float]]) -> str:
    return f"Matrix({json.dumps([list(row) for row in matrix])})"


def format_matrix(matrix: Matrix) -> str:
    """One-line rendering used in step traces."""
    rows = ", ".join("[" + ", ".join(format_number(v) for v in row) + "]" for row in matrix)
    return f"[{rows}]"


class MatrixEngine:
    """Runs matrix operations through a math capability."""

    def __init__(self, backend: MathCapability):
        self.backend = backend

    def compute(
        self,
        operation: str,
        a: Matrix,
        b: Optional[Matrix] = None,
    ) -> Tuple[Union[float, Matrix], List[str]]:
        """Apply ``operation`` to ``a`` (and ``b``) and return (value, steps).

        Raises:
            EvaluationError: Unknown operation or evaluator failure.
            DimensionError: Shape precondition violated.
            MissingOperandError: Binary operation without ``b``.
        """
        if operation not in MATRIX_OPERATIONS:
            raise EvaluationError(f"Unsupported matrix operation: {operation}")

        rows_a, cols_a = matrix_shape(a, "A")
        steps = [f"Matrix A: {format_matrix(a)}"]

        if operation in BINARY_OPERATIONS:
            if b is None:
                raise MissingOperandError(f"Matrix B is required for {operation}")
            rows_b, cols_b = matrix_shape(b, "B")
            steps.append(f"Matrix B: {format_matrix(b)}")

        literal_a = matrix_literal(a)

        if operation == "determinant":
            if rows_a != cols_a:
                raise DimensionError(f"Determinant needs a square matrix, got {rows_a}x{cols_a}")
            value = self.backend.evaluate(f"det({literal_a})")
            steps.append(f"Determinant: det(A) = {format_number(value)}")

        elif operation == "inverse":
            if rows_a != cols_a:
                raise DimensionError(f"Inverse needs a square matrix, got {rows_a}x{cols_a}")
            value = self.backend.evaluate(f"inv({literal_a})")
            steps.append(f"Inverse: A⁻¹ = {format_matrix(value)}")

        elif operation == "transpose":
            value = self.backend.evaluate(f"transpose({literal_a})")
            steps.append(f"Transpose: Aᵀ = {format_matrix(value)}")

        elif operation == "add":
            if (rows_a, cols_a) != (rows_b, cols_b):
                raise DimensionError(
                    f"Cannot add {rows_a}x{cols_a} and {rows_b}x{cols_b} matrices"
                )
            value = self.backend.evaluate(f"{literal_a} + {matrix_literal(b)}")
            steps.append(f"Sum: A + B = {format_matrix(value)}")

        else:
            if cols_a != rows_b:
                raise DimensionError(
                    f"Cannot multiply {rows_a}x{cols_a} by {rows_b}x{cols_b} matrices"
                )
            value = self.backend.evaluate(f"{literal_a} * {matrix_literal(b)}")
            steps.append(f"Product: A × B = {format_matrix(value)}")

        return value, steps
