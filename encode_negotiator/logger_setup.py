"""
Logging Setup for the Encode Negotiator
Initializes logging configuration from YAML file
"""

import copy
import logging
import logging.config
import os
from typing import Any, Dict, Optional

import yaml
from colorama import Fore, Style, init

ROOT_LOGGER_NAME = 'encode_negotiator'

# Initialize colorama for Windows compatibility
init(autoreset=True)


class ColoredFormatter(logging.Formatter):
    """Custom formatter to add colors to console output"""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA + Style.BRIGHT,
    }

    def format(self, record):
        # Color a copy so other handlers still see the plain level name
        record = copy.copy(record)
        if record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{Style.RESET_ALL}"
        return super().format(record)


DEFAULT_LOGGING_CONFIG: Dict[str, Any] = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'console': {
            '()': 'encode_negotiator.logger_setup.ColoredFormatter',
            'fmt': '%(asctime)s | %(levelname)-8s | %(message)s',
            'datefmt': '%H:%M:%S'
        }
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'level': 'WARNING',
            'formatter': 'console',
            'stream': 'ext://sys.stderr'
        }
    },
    'loggers': {
        ROOT_LOGGER_NAME: {
            'level': 'DEBUG',
            'handlers': ['console'],
            'propagate': False
        }
    }
}


def _load_logging_config(config_path: str) -> Dict[str, Any]:
    if not os.path.exists(config_path):
        return copy.deepcopy(DEFAULT_LOGGING_CONFIG)
    with open(config_path, 'r', encoding='utf-8') as file:
        config_data = yaml.safe_load(file) or {}
    return config_data.get('logging') or copy.deepcopy(DEFAULT_LOGGING_CONFIG)


def setup_logging(config_path: str = "config/logging.yaml", log_level: Optional[str] = None) -> logging.Logger:
    """
    Setup logging configuration from YAML file

    Args:
        config_path: Path to logging configuration file; the packaged default
            is used when it does not exist
        log_level: Override console level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    if not os.path.exists(config_path):
        config_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config', 'logging.yaml')

    try:
        logging_config = _load_logging_config(config_path)

        if log_level:
            log_level = log_level.upper()
            console = logging_config.get('handlers', {}).get('console')
            if console is not None:
                console['level'] = log_level
            package_logger = logging_config.get('loggers', {}).get(ROOT_LOGGER_NAME)
            if package_logger is not None and logging.getLevelName(package_logger.get('level', 'DEBUG')) > logging.getLevelName(log_level):
                package_logger['level'] = log_level

        logging.config.dictConfig(logging_config)
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.debug(f"Logging initialized from {config_path}")
        return logger

    except (OSError, ValueError, TypeError, AttributeError, yaml.YAMLError) as e:
        # Fallback to basic logging if configuration fails
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s | %(levelname)-8s | %(message)s',
            datefmt='%H:%M:%S'
        )
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.error(f"Failed to load logging configuration: {e}")
        logger.info("Using basic logging configuration")
        return logger


def get_logger(name: str = None) -> logging.Logger:
    """Get a logger instance"""
    if name:
        return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')
    return logging.getLogger(ROOT_LOGGER_NAME)
