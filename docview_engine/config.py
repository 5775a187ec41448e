from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .utils import load_json


@dataclass(frozen=True)
class EngineConfig:
    geometry: dict[str, Any] = field(default_factory=dict)
    viewer: dict[str, Any] = field(default_factory=dict)
    overlay: dict[str, Any] = field(default_factory=dict)
    logging: dict[str, Any] = field(default_factory=dict)

    @property
    def viewer_dpi(self) -> float:
        return float(self.geometry.get("viewer_dpi", 96))

    @property
    def default_result_dpi(self) -> float:
        return float(self.geometry.get("default_result_dpi", 144))


def load_config(config_path: str | Path | None = None) -> EngineConfig:
    """Read a JSON config; None gives built-in defaults."""
    if config_path is None:
        return EngineConfig()

    data = load_json(config_path)
    if not isinstance(data, dict):
        raise ValueError(f"config must be a JSON object: {config_path}")
    return EngineConfig(
        geometry=data.get("geometry", {}),
        viewer=data.get("viewer", {}),
        overlay=data.get("overlay", {}),
        logging=data.get("logging", {}),
    )
