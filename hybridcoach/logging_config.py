"""Central logging configuration for Hybrid Coach.

Besides the combined ``app.log``, plan generation and adaptation decisions go
to ``plan_changes.log`` and the daily sweep to ``scheduler.log``.
"""
from __future__ import annotations

from logging.config import dictConfig
from pathlib import Path

from pydantic import ValidationError

from hybridcoach.config import get_settings

_configured = False

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Libraries that are chatty at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "apscheduler", "filelock", "alembic.runtime.migration")

_PLAN_CHANGE_LOGGERS = (
    "hybridcoach.services.plan_generation",
    "hybridcoach.services.adaptation_engine",
    "hybridcoach.services.injury_management",
)


def _file_handler(path: Path, level: str) -> dict:
    return {
        "class": "logging.FileHandler",
        "filename": str(path),
        "encoding": "utf-8",
        "formatter": "standard",
        "level": level,
    }


def build_logging_config(log_dir: Path, level: str) -> dict:
    """dictConfig payload routing records to the console and the log files under ``log_dir``."""

    loggers: dict[str, dict] = {name: {"level": "WARNING"} for name in _QUIET_LOGGERS}
    for name in _PLAN_CHANGE_LOGGERS:
        loggers[name] = {"handlers": ["plan_changes"], "propagate": True}
    loggers["scheduler"] = {"handlers": ["scheduler"], "propagate": True}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": level,
            },
            "app_file": _file_handler(log_dir / "app.log", level),
            "plan_changes": _file_handler(log_dir / "plan_changes.log", "INFO"),
            "scheduler": _file_handler(log_dir / "scheduler.log", level),
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["console", "app_file"]},
    }


def configure_logging(level: str | None = None) -> None:
    """Configure application logging once per process.

    Args:
        level: Overrides ``LOG_LEVEL`` when given
    """

    global _configured
    if _configured:
        return

    try:
        settings = get_settings()
        log_dir, configured_level = settings.log_dir, settings.log_level
    except ValidationError:
        # A broken environment should still produce logs explaining why.
        log_dir, configured_level = Path("logs"), "INFO"
    log_dir.mkdir(parents=True, exist_ok=True)

    dictConfig(build_logging_config(log_dir, (level or configured_level).upper()))
    _configured = True
