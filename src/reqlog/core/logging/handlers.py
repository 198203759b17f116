# src/reqlog/core/logging/handlers.py
"""
Handler factories for logging.dictConfig.

Each function returns a handler configuration dictionary; builder.py picks
which of them are active. Keeping them as pure functions makes the choice of
stream, formatter and filters easy to test per settings permutation.
"""

from pathlib import Path

from reqlog.config.settings import Settings

PRODUCER_FILTERS = ["request_id", "redact"]


def _formatter_name(settings: Settings) -> str:
    return "json" if settings.LOG_FORMAT == "json" else "standard"


def get_console_handler(settings: Settings) -> dict:
    """
    Console/stream handler.

    - "formatter": "json" when settings.LOG_FORMAT == "json", else "standard".
    - "stream": stdout, so container runtimes pick the records up.
    - "filters": request_id + redact, declared in builder.make_dict_config().
    """
    return {
        "class": "logging.StreamHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filters": list(PRODUCER_FILTERS),
        "stream": "ext://sys.stdout",
    }


def get_file_handler(settings: Settings) -> dict:
    file_path = str(Path(settings.LOG_DIR) / "access.log")
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filename": file_path,
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(PRODUCER_FILTERS),
    }


# Recovered panics and 5xx records land here as well, always as JSON.
def get_error_file_handler(settings: Settings) -> dict:
    error_file_path = str(Path(settings.LOG_DIR) / "errors.log")
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "json",
        "level": "ERROR",
        "filename": error_file_path,
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(PRODUCER_FILTERS),
    }
