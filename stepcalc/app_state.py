"""Application state for StepCalc.

One explicit state object, owned by ``CalculatorApp`` and changed only
through its methods. Durable fields are written through the StateStore after
each change; transient fields (current expression and result, busy flag,
error, live graph data, uploaded image) never reach disk.

``is_calculating`` is advisory. Nothing stops a second calculation from
starting while one is marked as running.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from . import graph_sampler
from .config import CalculatorConfig
from .engine import CalculationEngine
from .history import HistoryEntry, HistoryStore
from .persistence import (
    DISPLAY_MODES,
    PersistedState,
    StateStore,
    new_session_token,
)
from .result import CalculationResult


logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Everything the UI reads."""

    current_expression: str = ""
    current_result: str = ""
    is_calculating: bool = False
    error: Optional[str] = None
    display_mode: str = "calculator"
    graph_data: List[Dict[str, Any]] = field(default_factory=list)
    graph_range: Tuple[float, float] = graph_sampler.DEFAULT_RANGE
    uploaded_image: Optional[str] = None
    image_analysis_result: Optional[str] = None
    user_session: str = field(default_factory=new_session_token)


class CalculatorApp:
    """Controller that owns the application state and the history."""

    def __init__(
        self,
        engine: Optional[CalculationEngine] = None,
        store: Optional[StateStore] = None,
        config: Optional[CalculatorConfig] = None,
    ):
        """Initialize the app, loading persisted state when a store is given.

        Args:
            engine: Calculation engine.
            store: Persisted-state store; None keeps everything in memory.
            config: Calculator configuration.
        """
        self.config = config or CalculatorConfig()
        self.engine = engine or CalculationEngine(config=self.config)
        self.store = store

        persisted = store.load() if store else PersistedState(graph_range=self.config.default_range)
        self._extra = dict(persisted.extra)
        self.history = HistoryStore(
            capacity=self.config.history_capacity,
            entries=persisted.history,
        )
        self.state = AppState(
            display_mode=persisted.display_mode,
            graph_range=tuple(persisted.graph_range),
            user_session=persisted.user_session,
        )

    # --- Persistence ---

    def to_persisted(self) -> PersistedState:
        """Snapshot of the durable fields."""
        return PersistedState(
            history=self.history.entries,
            graph_range=tuple(self.state.graph_range),
            user_session=self.state.user_session,
            display_mode=self.state.display_mode,
            extra=dict(self._extra),
        )

    def _persist(self):
        if self.store is not None and self.config.autosave:
            self.store.save(self.to_persisted())

    # --- Expression editing ---

    def set_expression(self, expression: str):
        self.state.current_expression = expression
        self.state.error = None

    def append_to_expression(self, value: str):
        self.state.current_expression += value
        self.state.error = None

    def clear_expression(self):
        self.state.current_expression = ""
        self.state.error = None

    def clear_all(self):
        """Reset expression, result, error and live graph data."""
        self.state.current_expression = ""
        self.state.current_result = ""
        self.state.error = None
        self.state.graph_data = []

    # --- Calculation ---

    def calculate(self, result: CalculationResult) -> Optional[HistoryEntry]:
        """Consume one engine result.

        A failed result only sets the error. A successful one clears the
        error, becomes the current result and is committed to history.
        """
        self.state.is_calculating = False
        if not result.ok:
            self.state.error = result.error
            return None

        self.state.current_result = result.result
        self.state.error = None
        entry = self.history.add(result)
        if result.graph_data is not None:
            self.state.graph_data = [result.graph_data]
        self._persist()
        return entry

    def set_calculating(self, status: bool):
        self.state.is_calculating = status

    def set_error(self, error: Optional[str]):
        self.state.error = error

    def _run(self, operation, *args) -> CalculationResult:
        self.set_calculating(True)
        result = operation(*args)
        self.calculate(result)
        return result

    def run_expression(self, expression: Optional[str] = None) -> CalculationResult:
        """Evaluate ``expression`` (or the current expression)."""
        if expression is not None:
            self.set_expression(expression)
        return self._run(self.engine.evaluate_expression, self.state.current_expression)

    def run_derivative(self, expression: str, variable: str = "x") -> CalculationResult:
        return self._run(self.engine.calculate_derivative, expression, variable)

    def run_integral(self, expression: str, variable: str = "x") -> CalculationResult:
        return self._run(self.engine.calculate_integral, expression, variable)

    def run_equation(self, equation: str, variable: str = "x") -> CalculationResult:
        return self._run(self.engine.solve_equation, equation, variable)

    def run_statistics(self, data: Sequence[float]) -> CalculationResult:
        return self._run(self.engine.calculate_statistics, data)

    def run_matrix(self, operation: str, a, b=None) -> CalculationResult:
        return self._run(self.engine.calculate_matrix, operation, a, b)

    def run_graph(self, expression: str) -> CalculationResult:
        """Sample f(x) over the current graph range."""
        return self._run(self.engine.generate_graph, expression, self.state.graph_range)

    def run_surface(self, expression: str) -> CalculationResult:
        """Sample f(x, y) using the current graph range for both axes."""
        return self._run(self.engine.generate_surface, expression, self.state.graph_range)

    # --- Display mode ---

    def set_display_mode(self, mode: str):
        """Switch display mode.

        Raises:
            ValueError: For an unknown mode.
        """
        if mode not in DISPLAY_MODES:
            raise ValueError(f"Unknown display mode: {mode} (expected one of {', '.join(DISPLAY_MODES)})")
        self.state.display_mode = mode
        self._persist()

    # --- History ---

    def remove_from_history(self, entry_id: str) -> bool:
        removed = self.history.remove(entry_id)
        if removed:
            self._persist()
        return removed

    def clear_history(self):
        self.history.clear()
        self._persist()

    def export_history(self) -> dict:
        return self.history.export()

    # --- Graph ---

    def set_graph_data(self, data: List[Dict[str, Any]]):
        self.state.graph_data = list(data)

    def set_graph_range(self, value_range: Tuple[float, float]):
        """Set the plotting range.

        Raises:
            RangeError: If the range is empty, inverted or non-finite.
        """
        self.state.graph_range = graph_sampler.validate_range(value_range)
        self._persist()

    def zoom_in(self) -> Tuple[float, float]:
        self.set_graph_range(graph_sampler.zoom_in(self.state.graph_range))
        return self.state.graph_range

    def zoom_out(self) -> Tuple[float, float]:
        self.set_graph_range(graph_sampler.zoom_out(self.state.graph_range))
        return self.state.graph_range

    def reset_graph(self) -> Tuple[float, float]:
        """Restore the default range and drop all plotted series."""
        self.state.graph_data = []
        self.set_graph_range(graph_sampler.reset_range())
        return self.state.graph_range

    # --- Image and session ---

    def set_uploaded_image(self, image: Optional[str]):
        self.state.uploaded_image = image

    def set_image_analysis_result(self, result: Optional[str]):
        self.state.image_analysis_result = result

    def generate_user_session(self) -> str:
        self.state.user_session = new_session_token()
        self._persist()
        return self.state.user_session
