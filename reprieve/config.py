"""Configuration management for Reprieve.

Loads environment variables (optionally from a .env file) and provides
centralized config access.
"""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

__version__ = "1.0.0"

# PHP version assumed when neither the caller nor the project names one
DEFAULT_PHP_VERSION = "8.3"

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}
_FALSE_VALUES = {'0', 'false', 'no', 'off'}
_INFER_VALUES = {'', 'auto', 'infer'}


def env_flag(name: str) -> bool:
    """Read a boolean environment setting; unset or unrecognized is False."""
    return os.getenv(name, "").strip().lower() in _TRUE_VALUES


def parse_tristate(value: Optional[str], name: str) -> Optional[bool]:
    """Parse an enabled/disabled/infer setting.

    Args:
        value: Raw setting value, or None when unset
        name: Setting name used in the error message

    Returns:
        True, False, or None when the value asks for inference

    Raises:
        ValueError: If the value is not a recognized boolean or 'auto'
    """
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    if normalized in _INFER_VALUES:
        return None
    raise ValueError(
        f"{name} must be one of true/false/auto, got {value!r}"
    )


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_file: Path = None):
        """Initialize config by loading a .env file.

        Args:
            env_file: Explicit .env path (defaults to ./.env when present)
        """
        env_path = Path(env_file) if env_file else Path.cwd() / ".env"
        if env_path.exists():
            load_dotenv(env_path)

    @property
    def doctrine_enabled(self) -> Optional[bool]:
        """Tri-state switch for the Doctrine usage provider.

        Returns:
            True/False when set explicitly, None to infer from installed packages

        Raises:
            ValueError: If REPRIEVE_DOCTRINE_ENABLED holds an unknown value
        """
        return parse_tristate(
            os.getenv("REPRIEVE_DOCTRINE_ENABLED"), "REPRIEVE_DOCTRINE_ENABLED"
        )

    @property
    def php_version(self) -> Optional[str]:
        """PHP version of the analyzed runtime, if configured."""
        return os.getenv("REPRIEVE_PHP_VERSION") or None

    @property
    def debug(self) -> bool:
        return env_flag("REPRIEVE_DEBUG")


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config
