# reqlog/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   └── base.py                    # Panic + normalize_panic (used by the recovery middleware)

from .base import Panic, normalize_panic

__all__ = ["Panic", "normalize_panic"]
