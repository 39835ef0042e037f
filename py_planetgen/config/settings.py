import os
from pathlib import Path
from typing import Optional, Union

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def load_env_file(env_file: Union[str, Path]) -> int:
    """
    Load a .env file for local/dev environments.

    Only keys missing from the environment are set.

    Returns:
        Number of keys added
    """
    env_file = Path(env_file)
    if not env_file.exists():
        return 0

    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v
    return len(missing_keys)


class Settings(BaseSettings):
    """Process settings pulled from PLANETGEN_* environment variables."""

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (console or json)")

    # Generation Configuration
    config_file: Optional[Path] = Field(default=None, description="Planet configuration file (YAML or JSON)")

    model_config = SettingsConfigDict(env_prefix="PLANETGEN_", extra="ignore")


def get_settings(env_file: Optional[Union[str, Path]] = None) -> Settings:
    """Build settings from the environment, optionally seeded from a .env file."""
    if env_file is not None:
        load_env_file(env_file)
    return Settings()
