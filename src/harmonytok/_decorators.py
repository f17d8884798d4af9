"""Decorators shared by the vocabulary loaders."""

import functools
import logging
import time
from typing import Callable

log = logging.getLogger(__name__)


def measure_time(func: Callable) -> Callable:
    """Log how long a load took, tagged with its source, even when it fails."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        source = args[0] if args else next(iter(kwargs.values()), "")
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed = time.perf_counter() - start
            log.info(f"{func.__name__}({source!s}) completed in {elapsed:.2f} s")

    return wrapper
