"""Calculation history.

A bounded, newest-first log of successful calculations:
- Append on success only
- Hard capacity; the oldest entry is evicted on overflow (FIFO, reads do
  not change eviction order)
- Removal by id, full clear, and a non-mutating export snapshot
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .result import CalculationResult, OperationType


DEFAULT_CAPACITY = 50


@dataclass(frozen=True)
class HistoryEntry:
    """A committed calculation. Immutable once created."""

    id: str
    expression: str
    result: str
    steps: Tuple[str, ...] = field(default_factory=tuple)
    operation_type: OperationType = OperationType.BASIC
    timestamp: str = ""
    graph_data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = {
            "id": self.id,
            "expression": self.expression,
            "result": self.result,
            "steps": list(self.steps),
            "operationType": self.operation_type.value,
            "timestamp": self.timestamp,
        }
        if self.graph_data is not None:
            data["graphData"] = self.graph_data
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryEntry":
        """Create from dictionary."""
        return cls(
            id=str(data["id"]),
            expression=data.get("expression", ""),
            result=data.get("result", ""),
            steps=tuple(data.get("steps", [])),
            operation_type=OperationType(data.get("operationType", "basic")),
            timestamp=data.get("timestamp", ""),
            graph_data=data.get("graphData"),
        )

    def to_result(self) -> CalculationResult:
        """Rebuild the CalculationResult this entry was committed from."""
        return CalculationResult(
            expression=self.expression,
            result=self.result,
            steps=list(self.steps),
            operation_type=self.operation_type,
            graph_data=self.graph_data,
        )


def _numeric_id(entry_id: str) -> int:
    try:
        return int(entry_id)
    except (TypeError, ValueError):
        return 0


class HistoryStore:
    """Bounded newest-first history of calculations."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        entries: Optional[List[HistoryEntry]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize store.

        Args:
            capacity: Maximum number of entries kept.
            entries: Existing entries, newest first.
            clock: Returns the current UTC time (injectable for tests).
        """
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._entries: List[HistoryEntry] = list(entries or [])[:capacity]
        self._last_id = max((_numeric_id(e.id) for e in self._entries), default=0)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))

    @property
    def entries(self) -> List[HistoryEntry]:
        """Entries newest first (a copy)."""
        return list(self._entries)

    def _next_id(self, now: datetime) -> str:
        # Milliseconds since the epoch, bumped so ids stay unique and ordered.
        candidate = int(now.timestamp() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return str(candidate)

    def add(self, result: CalculationResult) -> HistoryEntry:
        """Commit a successful result and return the new entry.

        Raises:
            ValueError: If ``result`` carries an error.
        """
        if not result.ok:
            raise ValueError(f"Failed calculations are not stored: {result.error}")

        now = self._clock()
        entry = HistoryEntry(
            id=self._next_id(now),
            expression=result.expression,
            result=result.result,
            steps=tuple(result.steps),
            operation_type=result.operation_type,
            timestamp=now.isoformat(),
            graph_data=result.graph_data,
        )
        self._entries.insert(0, entry)
        del self._entries[self.capacity:]
        return entry

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        """Get an entry by id, or None."""
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def remove(self, entry_id: str) -> bool:
        """Remove an entry by id. Returns False when there was nothing to remove."""
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        return len(self._entries) != before

    def clear(self):
        """Remove every entry."""
        self._entries = []

    def search(self, term: str) -> List[HistoryEntry]:
        """Entries whose expression or result contains ``term`` (case-insensitive)."""
        needle = term.lower()
        return [
            e for e in self._entries
            if needle in e.expression.lower() or needle in e.result.lower()
        ]

    def filter(self, operation_type: OperationType) -> List[HistoryEntry]:
        """Entries produced by one operation family."""
        return [e for e in self._entries if e.operation_type == OperationType(operation_type)]

    def export(self) -> dict:
        """Snapshot of the whole history. The store is not modified."""
        return {
            "exportedAt": self._clock().isoformat(),
            "count": len(self._entries),
            "history": self.to_list(),
        }

    def to_list(self) -> List[dict]:
        return [e.to_dict() for e in self._entries]

    @classmethod
    def from_list(
        cls,
        data: List[dict],
        capacity: int = DEFAULT_CAPACITY,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "HistoryStore":
        """Rebuild a store from serialized entries (newest first)."""
        entries = [HistoryEntry.from_dict(item) for item in data]
        return cls(capacity=capacity, entries=entries, clock=clock)
