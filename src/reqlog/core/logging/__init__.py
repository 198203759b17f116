# src/reqlog/core/logging/
# ├─ __init__.py            # public API
# ├─ builder.py             # make_dict_config(settings) + setup_logging(settings)
# ├─ fields.py              # structured field <-> LogRecord helpers
# ├─ formatters.py          # JsonFormatter, ColorFormatter
# ├─ filters.py             # RequestIdFilter (+ contextvar helpers), RedactFilter
# └─ handlers.py            # handler factories for dictConfig


from .builder import setup_logging, make_dict_config, stop_queue_logging
from .fields import Fields, to_extra, record_fields
from .filters import set_request_id, get_request_id, reset_request_id, RequestIdFilter, RedactFilter
from .formatters import JsonFormatter, ColorFormatter

__all__ = [
    "setup_logging",
    "make_dict_config",
    "stop_queue_logging",
    "Fields",
    "to_extra",
    "record_fields",
    "set_request_id",
    "get_request_id",
    "reset_request_id",
    "RequestIdFilter",
    "RedactFilter",
    "JsonFormatter",
    "ColorFormatter",
]
