"""Math capability adapters.

The engine never talks to SymPy directly. It goes through ``MathCapability``,
whose five operations (evaluate, differentiate, integrate, solve, simplify)
are the whole contract; any backend implementing them can be swapped in.

``SympyBackend`` is the shipped implementation:
- Numeric evaluation of arithmetic, trig/log functions and matrix literals
- Symbolic differentiation (always simplified), integration and solving
- Compilation of plot expressions into fast ``math``-module callables
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence, Union

import sympy
from sympy.parsing.sympy_parser import (
    convert_xor,
    parse_expr,
    standard_transformations,
)

from .errors import CalculatorError, DimensionError, EvaluationError, SymbolicError


logger = logging.getLogger(__name__)

Number = Union[int, float]
MatrixValue = List[List[Number]]

_TRANSFORMATIONS = standard_transformations + (convert_xor,)

# Strings that have no business in a math expression and would reach eval().
_FORBIDDEN = ("__", ";", "lambda", "import")


def _as_matrix(value) -> sympy.Matrix:
    try:
        return sympy.Matrix(value)
    except (TypeError, ValueError) as exc:
        raise EvaluationError(f"Not a matrix: {value}") from exc


def _det(value):
    matrix = _as_matrix(value)
    if not matrix.is_square:
        raise DimensionError(f"Determinant needs a square matrix, got {matrix.rows}x{matrix.cols}")
    return matrix.det()


def _inv(value):
    matrix = _as_matrix(value)
    if not matrix.is_square:
        raise DimensionError(f"Inverse needs a square matrix, got {matrix.rows}x{matrix.cols}")
    if matrix.det() == 0:
        raise EvaluationError("Matrix is singular and has no inverse")
    return matrix.inv()


def _transpose(value):
    return _as_matrix(value).T


_NAMESPACE = {
    "pi": sympy.pi,
    "e": sympy.E,
    "ln": sympy.log,
    "log": sympy.log,
    "sqrt": sympy.sqrt,
    "abs": sympy.Abs,
    "Matrix": sympy.Matrix,
    "det": _det,
    "inv": _inv,
    "transpose": _transpose,
}


def _excerpt(text: str, limit: int = 60) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def format_expression(expr) -> str:
    """Render a SymPy expression with ``^`` powers so it can be re-submitted."""
    return sympy.sstr(expr).replace("**", "^")


def to_number(value) -> Number:
    """Convert a closed SymPy scalar to ``int`` or ``float``.

    Raises:
        EvaluationError: If the value still has free symbols, is undefined
            (NaN, complex infinity) or is not real.
    """
    value = sympy.sympify(value)
    if value.free_symbols:
        names = ", ".join(sorted(s.name for s in value.free_symbols))
        raise EvaluationError(f"Undefined symbol(s): {names}")
    if value.has(sympy.zoo, sympy.nan):
        raise EvaluationError("Undefined result")
    if value.is_Integer:
        return int(value)

    try:
        as_complex = complex(sympy.N(value))
    except (TypeError, ValueError) as exc:
        raise EvaluationError(f"Result is not a number: {value}") from exc

    if as_complex.imag != 0:
        raise EvaluationError(f"Result is not a real number: {format_expression(value)}")
    if as_complex.real != as_complex.real:
        raise EvaluationError("Undefined result")
    return as_complex.real


class MathCapability(ABC):
    """Narrow interface over an expression evaluator and a CAS."""

    @abstractmethod
    def evaluate(
        self, expr: str, bindings: Optional[Dict[str, Number]] = None
    ) -> Union[Number, MatrixValue]:
        """Evaluate ``expr`` numerically with optional variable bindings."""

    @abstractmethod
    def differentiate(self, expr: str, variable: str) -> str:
        """Return the simplified derivative of ``expr`` with respect to ``variable``."""

    @abstractmethod
    def integrate(self, expr: str, variable: str) -> str:
        """Return an antiderivative of ``expr``."""

    @abstractmethod
    def solve(self, equation: str, variable: str) -> List[str]:
        """Return the solutions of ``equation`` for ``variable``."""

    @abstractmethod
    def simplify(self, expr: str) -> str:
        """Return an algebraically simplified form of ``expr``."""

    def compile(self, expr: str, variables: Sequence[str] = ("x",)) -> Callable[..., Number]:
        """Prepare ``expr`` for repeated evaluation.

        The default simply re-evaluates on every call; backends that can
        parse once should override it.
        """
        def evaluate_at(*values):
            return self.evaluate(expr, dict(zip(variables, values)))

        return evaluate_at


class SympyBackend(MathCapability):
    """MathCapability backed by SymPy."""

    def _parse(self, expr: str, names: Sequence[str] = (), error_cls=EvaluationError):
        text = (expr or "").strip()
        if not text:
            raise error_cls("Empty expression")
        for token in _FORBIDDEN:
            if token in text:
                raise error_cls(f"Forbidden token in expression: {token!r}")

        local_dict = dict(_NAMESPACE)
        for name in names:
            local_dict[name] = sympy.Symbol(name)

        try:
            return parse_expr(text, local_dict=local_dict, transformations=_TRANSFORMATIONS)
        except CalculatorError:
            raise
        except Exception as exc:
            # parse_expr can fail with almost any exception type on bad input
            raise error_cls(f"Invalid expression '{_excerpt(text)}': {exc}") from exc

    def evaluate(self, expr, bindings=None):
        bindings = bindings or {}
        parsed = self._parse(expr, names=list(bindings))

        if bindings and hasattr(parsed, "subs"):
            parsed = parsed.subs({sympy.Symbol(k): sympy.sympify(v) for k, v in bindings.items()})

        if isinstance(parsed, sympy.MatrixBase):
            return [[to_number(cell) for cell in row] for row in parsed.tolist()]
        if isinstance(parsed, sympy.Expr):
            return to_number(parsed)
        raise EvaluationError(f"Unsupported result type for '{expr}'")

    def compile(self, expr, variables=("x",)):
        parsed = self._parse(expr, names=variables)
        if not isinstance(parsed, sympy.Expr):
            raise EvaluationError(f"'{expr}' is not a scalar expression")

        unknown = {s.name for s in parsed.free_symbols} - set(variables)
        if unknown:
            raise EvaluationError(f"Unknown identifier(s): {', '.join(sorted(unknown))}")

        symbols = [sympy.Symbol(v) for v in variables]
        try:
            return sympy.lambdify(symbols, parsed, modules=["math", "mpmath"])
        except (NameError, SyntaxError, TypeError) as exc:
            raise EvaluationError(f"Cannot compile '{expr}': {exc}") from exc

    def differentiate(self, expr, variable):
        parsed = self._parse(expr, names=[variable], error_cls=SymbolicError)
        try:
            derivative = sympy.diff(parsed, sympy.Symbol(variable))
            return format_expression(sympy.simplify(derivative))
        except Exception as exc:
            raise SymbolicError(f"Cannot differentiate '{expr}': {exc}") from exc

    def integrate(self, expr, variable):
        parsed = self._parse(expr, names=[variable], error_cls=SymbolicError)
        try:
            result = sympy.integrate(parsed, sympy.Symbol(variable))
        except Exception as exc:
            raise SymbolicError(f"Cannot integrate '{expr}': {exc}") from exc

        if result.has(sympy.Integral):
            raise SymbolicError(f"No closed-form antiderivative for '{expr}'")
        return format_expression(result)

    def solve(self, equation, variable):
        if equation.count("=") > 1:
            raise SymbolicError(f"Invalid equation: {equation}")

        if "=" in equation:
            lhs_text, rhs_text = equation.split("=", 1)
            lhs = self._parse(lhs_text, names=[variable], error_cls=SymbolicError)
            rhs = self._parse(rhs_text, names=[variable], error_cls=SymbolicError)
            target = lhs - rhs
        else:
            target = self._parse(equation, names=[variable], error_cls=SymbolicError)

        try:
            solutions = sympy.solve(target, sympy.Symbol(variable))
        except Exception as exc:
            raise SymbolicError(f"Cannot solve '{equation}': {exc}") from exc

        unique = []
        for solution in solutions:
            if not any(sympy.simplify(solution - seen) == 0 for seen in unique):
                unique.append(solution)

        return [format_expression(s) for s in sorted(unique, key=_solution_key)]

    def simplify(self, expr):
        parsed = self._parse(expr, error_cls=SymbolicError)
        try:
            return format_expression(sympy.simplify(parsed))
        except Exception as exc:
            raise SymbolicError(f"Cannot simplify '{expr}': {exc}") from exc


def _solution_key(solution):
    """Real numeric solutions ascending, then everything else by text."""
    if solution.is_number and solution.is_real:
        return (0, float(solution), "")
    return (1, 0.0, sympy.sstr(solution))


def format_number(value) -> str:
    """Render a number the way results are shown: integral floats without '.0'."""
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e15:
            return str(int(value))
        return repr(value)
    return str(value)
