"""
urinorm.settings — Request, retry and cache defaults plus logging setup.
"""

import logging.config
import os


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value else default


REQUEST_TIMEOUT = _env_float("URINORM_REQUEST_TIMEOUT", 30.0)
CACHE_TTL = _env_int("URINORM_CACHE_TTL", 24 * 60 * 60)  # 1 day
MAX_REDIRECTS = _env_int("URINORM_MAX_REDIRECTS", 20)
USER_AGENT = os.environ.get("URINORM_USER_AGENT", "urinorm/1.0 (+identifier resolution)")
LOG_LEVEL = os.environ.get("URINORM_LOG_LEVEL", "WARNING")

SUCCESS_STATUS_CODES = frozenset({200, 201, 204})
TRANSIENT_STATUS_CODES = frozenset({429, 502, 503, 504})

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
}

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "urinorm": {
            "level": LOG_LEVEL,
            "handlers": ["console"],
            "propagate": False,
        },
    },
}


def configure_logging(level=None):
    """Install the package logging config, optionally overriding the level."""
    config = dict(LOGGING_CONFIG)
    if level is not None:
        config["loggers"] = {
            "urinorm": dict(LOGGING_CONFIG["loggers"]["urinorm"], level=level),
        }
    logging.config.dictConfig(config)
