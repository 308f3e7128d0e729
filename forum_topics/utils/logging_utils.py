import logging
import logging.config
from pathlib import Path
from typing import Optional

import yaml

from ..config.settings import settings

PACKAGE_LOGGER = "forum_topics"


def load_logging_config(config_path: Path) -> dict:
    """Reads a logging dictConfig from YAML."""
    with open(config_path, 'rt') as f:
        return yaml.safe_load(f) or {}


def setup_logging(config_path: Optional[Path] = None, debug: Optional[bool] = None) -> None:
    """
    Configure logging for the topic service.

    Args:
        config_path (Path): YAML dictConfig file. Defaults to settings.LOGGING_CONFIG_PATH.
        debug (bool): Lower the package logger to DEBUG. Defaults to settings.DEBUG.
    """
    config_path = Path(config_path or settings.LOGGING_CONFIG_PATH)
    debug = settings.DEBUG if debug is None else debug

    if not config_path.exists():
        logging.basicConfig(level=logging.INFO)
        logging.warning(f"Logging configuration file not found at {config_path}. Using basicConfig.")
    else:
        try:
            logging.config.dictConfig(load_logging_config(config_path))
            logging.getLogger(PACKAGE_LOGGER).info(f"Logging configured from {config_path}")
        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logging.basicConfig(level=logging.INFO)
            logging.error(f"Invalid logging configuration in {config_path}: {e}. Using basicConfig.")

    if debug:
        logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG)
