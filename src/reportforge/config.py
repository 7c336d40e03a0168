"""Engine configuration.

most knobs are collaborators passed to the engine, this only covers the
handful of behaviours callers actually want to tweak.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class EngineConfig(BaseModel):
    """Settings for a ReportEngine."""

    # label used for rows whose group-by value is missing
    unknown_group_label: str = "Unknown"
    delimiter: str = Field(default=",", min_length=1, max_length=1)
    # seconds to wait for the data store, None waits forever
    fetch_timeout: float | None = Field(default=None, gt=0)
    # yaml file with entity definitions, replaces the built-in entities
    entity_catalog: Path | None = None

    @classmethod
    def from_yaml(cls, path: str | Path) -> "EngineConfig":
        """Load config from a yaml file.

        relative entity_catalog paths are resolved against the config file's
        directory, which is what you want when both live in the same repo.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        config = cls.model_validate(data.get("reportforge", data))
        if config.entity_catalog is not None and not config.entity_catalog.is_absolute():
            config.entity_catalog = path.parent / config.entity_catalog
        return config
