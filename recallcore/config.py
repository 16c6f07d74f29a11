"""
Configuration management for recallcore.

Environment settings come from pydantic-settings; the scheduler
configuration lives in a JSON file that is created with defaults on first use.
"""
import logging
from pathlib import Path

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_MAX_BACKUPS
from .exceptions import ConfigurationError
from .scheduler import DEFAULT_SCHEDULER_CONFIG, SchedulerConfig

logger = logging.getLogger(__name__)


def get_default_data_dir() -> Path:
    return Path.home() / ".recallcore"


class Settings(BaseSettings):
    """
    Application settings, loaded from RECALLCORE_* environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="RECALLCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # RECALLCORE_DB_PATH
    db_path: Path = get_default_data_dir() / "topics.db"
    # RECALLCORE_CONFIG_PATH
    config_path: Path = get_default_data_dir() / "fsrs_config.json"
    # RECALLCORE_MAX_BACKUPS
    max_backups: int = DEFAULT_MAX_BACKUPS


def save_scheduler_config(config: SchedulerConfig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(indent=2), encoding="utf-8")


def load_scheduler_config(
    path: Path, create_if_missing: bool = True
) -> SchedulerConfig:
    """
    Load the scheduler configuration from a JSON file.

    Parameters:
        path (Path): Location of the config file.
        create_if_missing (bool): Write and return the default configuration
            when the file does not exist.

    Raises:
        ConfigurationError: If the file is missing (and not created), is not
            valid JSON, or holds invalid values.
    """
    if not path.exists():
        if not create_if_missing:
            raise ConfigurationError(f"Scheduler config not found: {path}")
        save_scheduler_config(DEFAULT_SCHEDULER_CONFIG, path)
        logger.info(f"Created default scheduler config at {path}")
        return DEFAULT_SCHEDULER_CONFIG

    try:
        return SchedulerConfig.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid scheduler config in {path}: {e}", original_exception=e
        ) from e
