"""Tests for history.py - bounded calculation history."""

from datetime import datetime, timedelta, timezone

import pytest

from stepcalc.history import DEFAULT_CAPACITY, HistoryEntry, HistoryStore
from stepcalc.result import CalculationResult, OperationType


class FakeClock:
    """Clock that advances one second per call."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


def make_result(expression: str, result: str = "1", op=OperationType.BASIC) -> CalculationResult:
    return CalculationResult(expression=expression, result=result, steps=[f"Input: {expression}"], operation_type=op)


@pytest.fixture
def store():
    """Create a store with a deterministic clock."""
    return HistoryStore(clock=FakeClock())


class TestAdd:
    """Tests for HistoryStore.add."""

    def test_newest_first(self, store):
        """Test entries are kept newest first."""
        store.add(make_result("1+1"))
        store.add(make_result("2+2"))
        assert [e.expression for e in store] == ["2+2", "1+1"]

    def test_capacity(self, store):
        """Test 51 adds keep 50 entries and evict the oldest."""
        for i in range(51):
            store.add(make_result(f"{i}+0"))
        assert len(store) == DEFAULT_CAPACITY == 50
        expressions = [e.expression for e in store]
        assert "0+0" not in expressions
        assert expressions[0] == "50+0"
        assert expressions[-1] == "1+0"

    def test_small_capacity(self):
        """Test a custom capacity."""
        store = HistoryStore(capacity=2, clock=FakeClock())
        for expr in ("a", "b", "c"):
            store.add(make_result(expr))
        assert [e.expression for e in store] == ["c", "b"]

    def test_failed_result_rejected(self, store):
        """Test failed results are never stored."""
        with pytest.raises(ValueError):
            store.add(CalculationResult.failure("1/0", OperationType.BASIC, "Calculation error"))
        assert len(store) == 0

    def test_ids_unique_and_increasing(self):
        """Test ids stay unique when the clock does not move."""
        fixed = datetime(2024, 1, 1, tzinfo=timezone.utc)
        store = HistoryStore(clock=lambda: fixed)
        first = store.add(make_result("a"))
        second = store.add(make_result("b"))
        assert int(second.id) == int(first.id) + 1

    def test_entry_fields(self, store):
        """Test the entry copies the result."""
        entry = store.add(make_result("x", "2", OperationType.DERIVATIVE))
        assert entry.result == "2"
        assert entry.steps == ("Input: x",)
        assert entry.operation_type == OperationType.DERIVATIVE
        assert entry.timestamp.startswith("2024-01-01T00:00:01")

    def test_entries_immutable(self, store):
        """Test entries cannot be modified."""
        entry = store.add(make_result("x"))
        with pytest.raises(AttributeError):
            entry.result = "changed"


class TestRemoveAndClear:
    """Tests for remove and clear."""

    def test_remove(self, store):
        """Test removing an existing entry."""
        entry = store.add(make_result("a"))
        store.add(make_result("b"))
        assert store.remove(entry.id) is True
        assert [e.expression for e in store] == ["b"]

    def test_remove_missing_is_noop(self, store):
        """Test removing an unknown id changes nothing."""
        store.add(make_result("a"))
        assert store.remove("nope") is False
        assert len(store) == 1

    def test_clear(self, store):
        """Test clear empties the store."""
        store.add(make_result("a"))
        store.clear()
        assert len(store) == 0


class TestQueries:
    """Tests for get, search, filter and export."""

    def test_get(self, store):
        """Test lookup by id."""
        entry = store.add(make_result("a"))
        assert store.get(entry.id) == entry
        assert store.get("missing") is None

    def test_search(self, store):
        """Test case-insensitive search over expression and result."""
        store.add(make_result("sin(x)", "0.5"))
        store.add(make_result("2+2", "4"))
        assert [e.expression for e in store.search("SIN")] == ["sin(x)"]
        assert [e.expression for e in store.search("4")] == ["2+2"]

    def test_filter(self, store):
        """Test filtering by operation type."""
        store.add(make_result("x^2", "2*x", OperationType.DERIVATIVE))
        store.add(make_result("1+1", "2"))
        assert [e.expression for e in store.filter("derivative")] == ["x^2"]

    def test_export_does_not_mutate(self, store):
        """Test export is a snapshot."""
        store.add(make_result("a"))
        export = store.export()
        assert export["count"] == 1
        assert export["history"][0]["expression"] == "a"
        assert "exportedAt" in export
        export["history"].clear()
        assert len(store) == 1

    def test_list_round_trip(self, store):
        """Test to_list/from_list preserve entries."""
        store.add(make_result("a"))
        store.add(make_result("b"))
        restored = HistoryStore.from_list(store.to_list())
        assert restored.entries == store.entries

    def test_restored_store_continues_ids(self, store):
        """Test new ids stay above restored ones."""
        entry = store.add(make_result("a"))
        fixed = datetime(2000, 1, 1, tzinfo=timezone.utc)
        restored = HistoryStore(entries=store.entries, clock=lambda: fixed)
        assert int(restored.add(make_result("b")).id) > int(entry.id)


def test_entry_from_dict_requires_id():
    """Test entries without an id are rejected."""
    with pytest.raises(KeyError):
        HistoryEntry.from_dict({"expression": "1+1"})
