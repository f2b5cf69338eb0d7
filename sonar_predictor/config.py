"""
Runtime configuration: where the two text sources live and how loud to log.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from .constants import DEFAULT_DATASET_PATH, DEFAULT_SAMPLES_PATH

ENV_DATASET_PATH = "SONAR_DATASET_PATH"
ENV_SAMPLES_PATH = "SONAR_SAMPLES_PATH"
ENV_LOG_LEVEL = "SONAR_LOG_LEVEL"


@dataclass(frozen=True)
class ServiceConfig:
    """Locations of the training and sample sources plus the log level."""

    dataset_path: Path = Path(DEFAULT_DATASET_PATH)
    samples_path: Path = Path(DEFAULT_SAMPLES_PATH)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> ServiceConfig:
        env = os.environ if environ is None else environ
        return cls(
            dataset_path=Path(env.get(ENV_DATASET_PATH, DEFAULT_DATASET_PATH)),
            samples_path=Path(env.get(ENV_SAMPLES_PATH, DEFAULT_SAMPLES_PATH)),
            log_level=env.get(ENV_LOG_LEVEL, "INFO"),
        )

    def with_overrides(self, **overrides) -> ServiceConfig:
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        for key in ("dataset_path", "samples_path"):
            if key in values:
                values[key] = Path(values[key])
        return replace(self, **values)
