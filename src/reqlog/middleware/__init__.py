# src/reqlog/middleware/
# ├─ __init__.py            # public API + install_middleware()
# ├─ config.py              # LoggerConfig, RecoverConfig
# ├─ context.py             # RequestContext / ResponseState shared per request
# ├─ logger.py              # LoggerMiddleware
# ├─ recover.py             # RecoverMiddleware
# └─ request_id.py          # RequestIDMiddleware

from typing import Optional

from starlette.applications import Starlette

from .config import (
    DEFAULT_LOGGER_MESSAGE,
    DEFAULT_RECOVER_MESSAGE,
    DEFAULT_STACK_TRACE_SIZE,
    LoggerConfig,
    RecoverConfig,
)
from .context import DEFAULT_REQUEST_ID_HEADER, RequestContext, ResponseState
from .logger import LoggerLike, LoggerMiddleware, level_for_status
from .recover import RecoverMiddleware
from .request_id import RequestIDMiddleware


def install_middleware(
    app: Starlette,
    logger: Optional[LoggerLike] = None,
    *,
    logger_config: Optional[LoggerConfig] = None,
    recover_config: Optional[RecoverConfig] = None,
    request_id: bool = False,
) -> None:
    """
    Register the reqlog middlewares on a Starlette / FastAPI app.

    Starlette runs the last registered middleware first, so recovery is added
    first (innermost) and the request-id middleware last (outermost):

        RequestIDMiddleware -> LoggerMiddleware -> RecoverMiddleware -> app

    With `request_id=True` the id header is the one configured on the logger
    (custom_request_id_header), so both agree on where to look.
    """
    app.add_middleware(RecoverMiddleware, logger=logger, config=recover_config)
    app.add_middleware(LoggerMiddleware, logger=logger, config=logger_config)
    if request_id:
        header = logger_config.custom_request_id_header if logger_config else ""
        app.add_middleware(RequestIDMiddleware, header=header or None)


__all__ = [
    "DEFAULT_LOGGER_MESSAGE",
    "DEFAULT_RECOVER_MESSAGE",
    "DEFAULT_REQUEST_ID_HEADER",
    "DEFAULT_STACK_TRACE_SIZE",
    "LoggerConfig",
    "RecoverConfig",
    "RequestContext",
    "ResponseState",
    "LoggerMiddleware",
    "RecoverMiddleware",
    "RequestIDMiddleware",
    "install_middleware",
    "level_for_status",
]
