"""The result contract shared by every calculator operation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class OperationType(str, Enum):
    """Which operation family produced a result."""

    BASIC = "basic"
    GRAPH = "graph"
    DERIVATIVE = "derivative"
    INTEGRAL = "integral"
    EQUATION = "equation"
    STATISTICS = "statistics"
    MATRIX = "matrix"


@dataclass
class CalculationResult:
    """Outcome of one engine call.

    ``result`` is always text, whatever the operation. When ``error`` is set
    the result and steps are empty.
    """

    expression: str
    result: str = ""
    steps: List[str] = field(default_factory=list)
    operation_type: OperationType = OperationType.BASIC
    graph_data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, expression: str, operation_type: OperationType, error: str) -> "CalculationResult":
        """Build a failed result with an empty payload."""
        return cls(
            expression=expression,
            result="",
            steps=[],
            operation_type=operation_type,
            error=error,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = {
            "expression": self.expression,
            "result": self.result,
            "steps": list(self.steps),
            "operationType": self.operation_type.value,
        }
        if self.graph_data is not None:
            data["graphData"] = self.graph_data
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CalculationResult":
        """Create from dictionary."""
        return cls(
            expression=data.get("expression", ""),
            result=data.get("result", ""),
            steps=list(data.get("steps", [])),
            operation_type=OperationType(data.get("operationType", "basic")),
            graph_data=data.get("graphData"),
            error=data.get("error"),
        )
