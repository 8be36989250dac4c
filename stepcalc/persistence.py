"""Persisted state for StepCalc.

Only the durable part of the application state is stored: history, graph
range, user session and display mode. It lives in ``.stepcalc/state.json``,
a key-value file where this application owns one namespace key:

    {"stepcalc-storage": {"version": 2, "state": {...}}}

Older versions are migrated step by step on load. Fields we do not know
about are carried along in ``extra`` and written back untouched.
"""

import json
import logging
import secrets
import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .errors import RangeError
from .graph_sampler import validate_range
from .history import HistoryEntry
from .output_helper import DATA_DIR_NAME


logger = logging.getLogger(__name__)

CURRENT_VERSION = 2
NAMESPACE = "stepcalc-storage"

DISPLAY_MODES = ("calculator", "graph", "history", "image")
DEFAULT_GRAPH_RANGE = (-10.0, 10.0)

_KNOWN_FIELDS = ("history", "graphRange", "userSession", "displayMode")
_SESSION_ALPHABET = string.ascii_lowercase + string.digits


def new_session_token() -> str:
    """Random opaque session token (9 base-36 characters)."""
    return "".join(secrets.choice(_SESSION_ALPHABET) for _ in range(9))


@dataclass
class PersistedState:
    """The durable subset of application state."""

    history: List[HistoryEntry] = field(default_factory=list)
    graph_range: Tuple[float, float] = DEFAULT_GRAPH_RANGE
    user_session: str = field(default_factory=new_session_token)
    display_mode: str = "calculator"
    version: int = CURRENT_VERSION
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """State body as written under the namespace key."""
        data = dict(self.extra)
        data.update({
            "history": [e.to_dict() for e in self.history],
            "graphRange": list(self.graph_range),
            "userSession": self.user_session,
            "displayMode": self.display_mode,
        })
        return data

    @classmethod
    def from_dict(cls, data: dict, version: int = CURRENT_VERSION) -> "PersistedState":
        """Create from a (migrated) state body."""
        items = data.get("history") or []
        if not isinstance(items, list):
            logger.warning("Ignoring stored history of type %s", type(items).__name__)
            items = []

        history = []
        for item in items:
            try:
                history.append(HistoryEntry.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable history entry %r: %s", item, e)

        graph_range = _load_range(data.get("graphRange", DEFAULT_GRAPH_RANGE))
        display_mode = data.get("displayMode", "calculator")
        if display_mode not in DISPLAY_MODES:
            display_mode = "calculator"

        return cls(
            history=history,
            graph_range=graph_range,
            user_session=data.get("userSession") or new_session_token(),
            display_mode=display_mode,
            version=version,
            extra={k: v for k, v in data.items() if k not in _KNOWN_FIELDS},
        )


def _load_range(value) -> Tuple[float, float]:
    try:
        return validate_range(value)
    except RangeError as e:
        logger.warning("Ignoring stored graph range %r: %s", value, e)
        return DEFAULT_GRAPH_RANGE


# --- Migrations ---


def _migrate_v0_to_v1(state: dict) -> dict:
    """v0 had no graph range or display mode."""
    state.setdefault("graphRange", list(DEFAULT_GRAPH_RANGE))
    state.setdefault("displayMode", "calculator")
    state.setdefault("history", [])
    return state


def _migrate_v1_to_v2(state: dict) -> dict:
    """v1 history items could use the database column names and lack ids."""
    items = state.get("history")
    if not isinstance(items, list):
        return state

    migrated = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            migrated.append(item)
            continue
        item = dict(item)
        if "operation_type" in item:
            item.setdefault("operationType", item.pop("operation_type"))
        if "calculation_steps" in item:
            item.setdefault("steps", item.pop("calculation_steps") or [])
        if "created_at" in item:
            item.setdefault("timestamp", item.pop("created_at"))
        if not item.get("id"):
            item["id"] = f"legacy-{index}"
        migrated.append(item)
    state["history"] = migrated
    return state


MIGRATIONS = {
    0: _migrate_v0_to_v1,
    1: _migrate_v1_to_v2,
}


def migrate(state: dict, from_version: int) -> dict:
    """Upgrade a state body from ``from_version`` to CURRENT_VERSION."""
    state = dict(state)
    version = from_version
    while version < CURRENT_VERSION:
        logger.info("Migrating persisted state v%d -> v%d", version, version + 1)
        state = MIGRATIONS[version](state)
        version += 1
    return state


class StateStore:
    """Reads and writes the persisted state under one namespace key."""

    def __init__(self, project_path: str, namespace: str = NAMESPACE):
        """Initialize with project path.

        Args:
            project_path: Path to project root.
            namespace: Key of this application's record in state.json.
        """
        self.project_path = Path(project_path).resolve()
        self.state_file = self.project_path / DATA_DIR_NAME / "state.json"
        self.namespace = namespace

    def _read_all(self) -> dict:
        if not self.state_file.exists():
            return {}
        try:
            with open(self.state_file) as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Ignoring unreadable state file %s: %s", self.state_file, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict):
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.state_file, "w") as f:
            json.dump(data, f, indent=2)

    def load(self) -> PersistedState:
        """Load the persisted state, migrating older versions first."""
        record = self._read_all().get(self.namespace)
        if not isinstance(record, dict):
            return PersistedState()

        version = record.get("version", 0)
        state = record.get("state", {})
        if not isinstance(version, int) or not isinstance(state, dict):
            logger.warning("Malformed state record in %s, starting fresh", self.state_file)
            return PersistedState()

        if version < CURRENT_VERSION:
            state = migrate(state, version)
            version = CURRENT_VERSION
        elif version > CURRENT_VERSION:
            logger.warning(
                "State file version %d is newer than supported version %d",
                version, CURRENT_VERSION,
            )
        return PersistedState.from_dict(state, version=version)

    def save(self, state: PersistedState):
        """Write ``state`` under the namespace key, keeping other keys."""
        data = self._read_all()
        data[self.namespace] = {
            "version": max(state.version, CURRENT_VERSION),
            "state": state.to_dict(),
        }
        self._write_all(data)

    def clear(self):
        """Drop this application's record from the state file."""
        data = self._read_all()
        if data.pop(self.namespace, None) is not None:
            self._write_all(data)
