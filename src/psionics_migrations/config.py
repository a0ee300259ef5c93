"""
Runtime configuration, read from the environment (and a ``.env`` file if present).

Variables:
    PSIONICS_DATA_DIR        World data directory (default: ./psionics_data)
    PSIONICS_MODULE_VERSION  Target schema version (default: installed version)
    PSIONICS_LEADER          Whether this process runs migrations (default: true)
    PSIONICS_LOG_LEVEL       Logging level name (default: INFO)
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("psionics-migrations")

FALLBACK_VERSION = "0.6.1"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def installed_version() -> str:
    """Version of the installed distribution, or the fallback when not installed."""
    try:
        from importlib.metadata import version as _get_version
        return _get_version("psionics-migrations")
    except Exception:
        return FALLBACK_VERSION


class EngineConfig(BaseModel):
    """Settings for one migration engine process."""
    data_dir: Path = Field(default=Path("psionics_data"))
    module_version: str = Field(default_factory=installed_version)
    leader: bool = True
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


def load_config(env_file: str | Path | None = None) -> EngineConfig:
    """Build the configuration from environment variables."""
    if not load_dotenv(env_file):
        logger.debug("No .env file loaded, using process environment only")

    values: dict[str, object] = {}
    if data_dir := os.getenv("PSIONICS_DATA_DIR"):
        values["data_dir"] = Path(data_dir).expanduser().resolve()
    if module_version := os.getenv("PSIONICS_MODULE_VERSION"):
        values["module_version"] = module_version
    if leader := os.getenv("PSIONICS_LEADER"):
        values["leader"] = leader.strip().lower() in _TRUE_VALUES
    if log_level := os.getenv("PSIONICS_LOG_LEVEL"):
        values["log_level"] = log_level
    return EngineConfig(**values)
