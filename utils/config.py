"""
Configuration Management

Simple utility for loading environment configuration and setting up logging.
KPI defaults themselves live on config.Config.
"""

import logging
from typing import Optional
from dotenv import load_dotenv

from config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def load_config(env_path: Optional[str] = None) -> bool:
    """
    Load environment configuration from .env file.

    Args:
        env_path: Optional path to .env file. If None, searches in current directory.

    Returns:
        bool: True if .env file was found and loaded, False otherwise
    """
    if env_path:
        return load_dotenv(env_path)
    return load_dotenv()


def validate_config() -> list:
    """
    Validate the loaded configuration.

    Returns:
        list: List of configuration problems (empty if all valid)
    """
    errors = []

    try:
        Config.validate()
    except ValueError as e:
        errors.append(str(e))

    level = str(Config.LOG_LEVEL).upper()
    if not isinstance(logging.getLevelName(level), int):
        errors.append(f"LOG_LEVEL '{Config.LOG_LEVEL}' is not a valid logging level")

    return errors


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging the same way for every entry point.

    Args:
        level: Logging level name. Defaults to Config.LOG_LEVEL; unknown names fall back to INFO.
    """
    numeric_level = logging.getLevelName(str(level or Config.LOG_LEVEL).upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT
    )
