"""
reqlog: request logging and panic recovery middleware for Starlette / FastAPI.

    from reqlog import LoggerConfig, RecoverConfig, install_middleware

    install_middleware(app, logging.getLogger("api"), logger_config=LoggerConfig(error_only=True))
"""

from .exceptions import Panic
from .middleware import (
    DEFAULT_LOGGER_MESSAGE,
    DEFAULT_RECOVER_MESSAGE,
    DEFAULT_REQUEST_ID_HEADER,
    LoggerConfig,
    LoggerMiddleware,
    RecoverConfig,
    RecoverMiddleware,
    RequestContext,
    RequestIDMiddleware,
    install_middleware,
)

__all__ = [
    "DEFAULT_LOGGER_MESSAGE",
    "DEFAULT_RECOVER_MESSAGE",
    "DEFAULT_REQUEST_ID_HEADER",
    "LoggerConfig",
    "LoggerMiddleware",
    "Panic",
    "RecoverConfig",
    "RecoverMiddleware",
    "RequestContext",
    "RequestIDMiddleware",
    "install_middleware",
]
