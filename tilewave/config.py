"""
Generation settings for tilewave.

Settings come from a YAML file and are overridden by command-line flags.
Both layouts are accepted:

    generation:
      tile_size: 3
      width: 64

or the same keys at the top level.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tilewave.core.errors import InvalidInputError


CONFIG_ENV_VAR = "TILEWAVE_CONFIG"


class GenerationConfig(BaseModel):
    """Parameters of one learn + synthesize run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    tile_size: int = Field(default=3, ge=1)
    width: int = Field(default=64, ge=1)
    height: int = Field(default=64, ge=1)
    seed: int | None = None
    max_restarts: int | None = Field(default=100, ge=0)  # None = retry forever

    # Output rendering
    scale: int = Field(default=8, ge=1)  # Output pixels per cell
    frame_every: int = Field(default=1, ge=1)  # Steps between saved frames

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenerationConfig:
        """Create a config from a dictionary (YAML data), validating it."""
        try:
            return cls(**data)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid generation config: {e}") from e

    def with_overrides(self, **overrides: Any) -> GenerationConfig:
        """Return a copy with every non-None override applied and re-validated."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return GenerationConfig.from_dict(values)


def load_config(path: Path | str | None) -> GenerationConfig:
    """
    Load settings from a YAML file.

    Args:
        path: Path to the YAML file. None or a missing file gives defaults.

    Returns:
        Validated GenerationConfig

    Raises:
        InvalidInputError: If the file content is not a valid config
    """
    if path is None:
        return GenerationConfig()

    config_path = Path(path)
    if not config_path.exists():
        return GenerationConfig()

    with open(config_path) as f:
        data = yaml.safe_load(f)

    if isinstance(data, dict) and "generation" in data:
        data = data["generation"]
    if not data:
        return GenerationConfig()
    if not isinstance(data, dict):
        raise InvalidInputError(f"Config file {config_path} must contain a mapping")

    return GenerationConfig.from_dict(data)
