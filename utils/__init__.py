from .cache import ResponseStore, make_cache_key
from .logging_config import configure_logging

__all__ = [
    "ResponseStore",
    "make_cache_key",
    "configure_logging",
]
