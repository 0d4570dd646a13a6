"""
Logging configuration

Application loggers live under the ``soulseer`` namespace; uvicorn's access
log keeps its own formatter.
"""
from typing import Any, Dict

DEFAULT_FORMAT = "%(levelname)s:     %(asctime)s - %(name)s - %(message)s"


def build_logging_config(level: str = "INFO", sql_echo: bool = False) -> Dict[str, Any]:
    """dictConfig for the app; ``sql_echo`` surfaces SQLAlchemy statements"""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "access": {
                "()": "uvicorn.logging.AccessFormatter",
                "fmt": '%(levelprefix)s %(asctime)s :: "%(request_line)s" %(status_code)s',
                "use_colors": True,
            },
            "default": {"format": DEFAULT_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": {
            "access": {"formatter": "access", "class": "logging.StreamHandler", "stream": "ext://sys.stdout"},
            "default": {"formatter": "default", "class": "logging.StreamHandler", "stream": "ext://sys.stdout"},
        },
        "loggers": {
            "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
            "soulseer": {"handlers": ["default"], "level": level.upper(), "propagate": False},
            "sqlalchemy.engine": {
                "handlers": ["default"],
                "level": "INFO" if sql_echo else "WARNING",
                "propagate": False,
            },
        },
    }
