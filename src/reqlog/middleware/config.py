# src/reqlog/middleware/config.py
"""
Middleware configuration.

Both models are frozen: they are built once when the middleware is registered
and then shared by every concurrent request, so nothing may change them later.
Callback fields are plain functions; an unset callback disables the feature.
"""

from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict

from reqlog.core.logging.fields import Fields
from .context import RequestContext

DEFAULT_LOGGER_MESSAGE = "Request handled"
DEFAULT_RECOVER_MESSAGE = "Recovered from panic"
DEFAULT_STACK_TRACE_SIZE = 4 << 10  # 4 KiB

SkipRequest = Callable[[RequestContext], bool]
AdditionalFields = Callable[[RequestContext], Optional[Fields]]
ErrorHandler = Callable[[RequestContext, BaseException], None]
RecoverFields = Callable[[RequestContext, BaseException], Optional[Fields]]


class LoggerConfig(BaseModel):
    """
    How LoggerMiddleware builds its one record per request.

    - error_only: only log responses with status >= 300, or when the downstream raised.
    - skip_request: evaluated after the downstream ran; True drops the record.
    - custom_message: replaces "Request handled".
    - include_caller: keep the `caller` field. Off by default: the call site is
      always the middleware itself.
    - omit_*: drop that particular field.
    - custom_request_id_header: header holding the request id (default X-Request-ID).
    - additional_fields: extra fields appended after the standard ones.
    """

    model_config = ConfigDict(frozen=True)

    error_only: bool = False
    skip_request: Optional[SkipRequest] = None
    custom_message: str = ""
    include_caller: bool = False

    omit_status_text: bool = False
    omit_client_ip: bool = False
    omit_user_agent: bool = False
    omit_path: bool = False
    omit_request_id: bool = False
    omit_referer: bool = False

    custom_request_id_header: str = ""
    additional_fields: Optional[AdditionalFields] = None

    @property
    def message(self) -> str:
        return self.custom_message or DEFAULT_LOGGER_MESSAGE


class RecoverConfig(BaseModel):
    """
    How RecoverMiddleware reports a caught exception.

    - custom_message: replaces "Recovered from panic".
    - stack_trace / stack_trace_size: capture the traceback, at most
      stack_trace_size bytes (<= 0 means the 4 KiB default).
    - custom_request_id_header: as for LoggerConfig.
    - error_handler: called with (ctx, error) after the record is logged; it may
      call ctx.set_response() to replace the generic 500.
    - additional_fields: extra fields for the panic record, built from (ctx, error).
    """

    model_config = ConfigDict(frozen=True)

    custom_message: str = ""
    stack_trace: bool = False
    stack_trace_size: int = DEFAULT_STACK_TRACE_SIZE
    custom_request_id_header: str = ""
    error_handler: Optional[ErrorHandler] = None
    additional_fields: Optional[RecoverFields] = None

    @property
    def message(self) -> str:
        return self.custom_message or DEFAULT_RECOVER_MESSAGE

    @property
    def stack_limit(self) -> int:
        return self.stack_trace_size if self.stack_trace_size > 0 else DEFAULT_STACK_TRACE_SIZE
