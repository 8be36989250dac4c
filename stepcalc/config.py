"""Configuration for StepCalc.

Settings live in ``.stepcalc/config.json`` under the project path. Every
section is optional; missing keys and unreadable files fall back to defaults.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from .output_helper import DATA_DIR_NAME, OutputConfig


logger = logging.getLogger(__name__)


@dataclass
class SolverConfig:
    """Settings for the remote problem solver."""

    model: str = "gpt-4o-mini"
    max_tokens: int = 4000
    temperature: float = 0.1
    api_key_env: str = "OPENAI_API_KEY"
    base_url: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "api_key_env": self.api_key_env,
            "base_url": self.base_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SolverConfig":
        return cls(
            model=data.get("model", "gpt-4o-mini"),
            max_tokens=data.get("max_tokens", 4000),
            temperature=data.get("temperature", 0.1),
            api_key_env=data.get("api_key_env", "OPENAI_API_KEY"),
            base_url=data.get("base_url"),
        )


@dataclass
class CalculatorConfig:
    """All calculator settings."""

    history_capacity: int = 50
    graph_steps: int = 200
    surface_divisions: int = 30
    default_range: Tuple[float, float] = (-10.0, 10.0)
    autosave: bool = True
    output: OutputConfig = field(default_factory=OutputConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)

    def to_dict(self) -> dict:
        return {
            "history": {"capacity": self.history_capacity},
            "graph": {
                "steps": self.graph_steps,
                "surface_divisions": self.surface_divisions,
                "default_range": list(self.default_range),
            },
            "autosave": self.autosave,
            "output": self.output.to_dict(),
            "solver": self.solver.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CalculatorConfig":
        history = data.get("history", {})
        graph = data.get("graph", {})
        default_range = graph.get("default_range", [-10.0, 10.0])
        return cls(
            history_capacity=history.get("capacity", 50),
            graph_steps=graph.get("steps", 200),
            surface_divisions=graph.get("surface_divisions", 30),
            default_range=(float(default_range[0]), float(default_range[1])),
            autosave=data.get("autosave", True),
            output=OutputConfig.from_dict(data.get("output", {})),
            solver=SolverConfig.from_dict(data.get("solver", {})),
        )


def config_path(project_path: str) -> Path:
    return Path(project_path).resolve() / DATA_DIR_NAME / "config.json"


def load_config(project_path: str) -> CalculatorConfig:
    """Load calculator configuration.

    Args:
        project_path: Path to project root.

    Returns:
        CalculatorConfig from config.json, or defaults.
    """
    config_file = config_path(project_path)
    if not config_file.exists():
        return CalculatorConfig()

    try:
        with open(config_file) as f:
            data = json.load(f)
        return CalculatorConfig.from_dict(data)
    except (json.JSONDecodeError, IOError, TypeError, ValueError, IndexError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_file, e)
        return CalculatorConfig()


def save_config(project_path: str, config: CalculatorConfig) -> Path:
    """Write ``config`` to the project's config.json and return its path."""
    config_file = config_path(project_path)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        json.dump(config.to_dict(), f, indent=2)
    return config_file
