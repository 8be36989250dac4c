"""Output helper for StepCalc.

Keeps terminal output readable:
- Cap how many result lines are printed (big matrices, statistics JSON)
- Number derivation steps and cap how many are shown
- Squash values into one table cell
- Compact mode (result only, no steps)
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence


DATA_DIR_NAME = ".stepcalc"

ELLIPSIS = "..."


@dataclass
class OutputConfig:
    """Output configuration options."""

    compact_mode: bool = False
    max_lines: int = 50  # 0 = unlimited
    max_steps_shown: int = 20  # 0 = unlimited
    truncate_long_values: bool = True
    value_max_length: int = 80

    def to_dict(self) -> dict:
        return {
            "compact_mode": self.compact_mode,
            "max_lines": self.max_lines,
            "max_steps_shown": self.max_steps_shown,
            "truncate_long_values": self.truncate_long_values,
            "value_max_length": self.value_max_length,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OutputConfig":
        defaults = cls()
        return cls(**{key: data.get(key, value) for key, value in defaults.to_dict().items()})


def clip(text: str, limit: int) -> str:
    """Shorten ``text`` to ``limit`` characters, ending in an ellipsis."""
    if limit <= 0 or len(text) <= limit:
        return text
    keep = max(limit - len(ELLIPSIS), 0)
    return text[:keep] + ELLIPSIS


def cap_lines(lines: Sequence[str], max_lines: int) -> List[str]:
    """First ``max_lines`` lines plus a note on how many were hidden."""
    lines = list(lines)
    hidden = len(lines) - max_lines
    if max_lines <= 0 or hidden <= 0:
        return lines
    return lines[:max_lines] + [f"... ({hidden} more lines)"]


def number_steps(steps: Sequence[str], max_shown: int = 0) -> List[str]:
    """Number steps from 1, keeping at most ``max_shown`` (0 = all)."""
    numbered = [f"{index}. {step}" for index, step in enumerate(steps, 1)]
    hidden = len(numbered) - max_shown
    if max_shown <= 0 or hidden <= 0:
        return numbered
    return numbered[:max_shown] + [f"... and {hidden} more steps"]


def one_line(value: Any, config: OutputConfig) -> str:
    """Collapse whitespace so a value fits one table cell."""
    text = " ".join(str(value).split())
    if config.truncate_long_values:
        return clip(text, config.value_max_length)
    return text


class OutputHelper:
    """Applies an OutputConfig to calculation output."""

    def __init__(self, config: Optional[OutputConfig] = None):
        self.config = config or OutputConfig()

    def result_lines(self, text: str) -> List[str]:
        """Split a result into printable lines, capped by ``max_lines``."""
        return cap_lines(text.splitlines() or [""], self.config.max_lines)

    def cell(self, value: Any) -> str:
        return one_line(value, self.config)

    def steps(self, steps: Sequence[str]) -> List[str]:
        """Numbered steps to print; empty in compact mode."""
        if self.config.compact_mode:
            return []
        return number_steps(steps, self.config.max_steps_shown)
