"""StepCalc - calculator with step-by-step traces.

Features:
- Arithmetic, derivatives, integrals and equation solving
- Descriptive statistics and matrix operations
- 2D and 3D graph sampling with zoomable ranges
- Bounded, persistent calculation history
- Optional remote solver for word problems and photos
"""

__version__ = "0.1.0"
__author__ = "StepCalc contributors"

from .backend import MathCapability, SympyBackend
from .engine import CalculationEngine
from .errors import (
    CalculatorError,
    DimensionError,
    EvaluationError,
    MissingOperandError,
    RangeError,
    ServiceError,
    SymbolicError,
)
from .graph_sampler import GraphSampler
from .history import HistoryEntry, HistoryStore
from .result import CalculationResult, OperationType

__all__ = [
    # Engine
    "CalculationEngine",
    "CalculationResult",
    "OperationType",
    "GraphSampler",
    # Math backend
    "MathCapability",
    "SympyBackend",
    # History
    "HistoryEntry",
    "HistoryStore",
    # Errors
    "CalculatorError",
    "EvaluationError",
    "SymbolicError",
    "DimensionError",
    "MissingOperandError",
    "RangeError",
    "ServiceError",
]
