"""Process-wide memory of partition tables already known to exist."""

from __future__ import annotations

import threading
from typing import Callable

from cachetools import TTLCache

DEFAULT_TTL_SECONDS = 30 * 60
_CAPACITY = 1_000_000

_flush_functions: list[Callable[[], None]] = []
_lock = threading.Lock()
# Entries expire a fixed time after being stored; reads do not extend them.
_partition_tables: TTLCache[str, bool] = TTLCache(
    maxsize=_CAPACITY, ttl=DEFAULT_TTL_SECONDS
)


def add_flush_function(func: Callable[[], None]) -> None:
    """Register a function to be called by flush_caches."""
    _flush_functions.append(func)


def flush_caches() -> None:
    """Call every registered flush function."""
    for func in list(_flush_functions):
        func()


def _clear_partition_tables() -> None:
    with _lock:
        _partition_tables.clear()


def remember_partition_table(table_name: str) -> None:
    """Record that a partition table exists."""
    with _lock:
        _partition_tables[table_name] = True


def is_partition_table_remembered(table_name: str) -> bool:
    """Tell whether a partition table was recorded and has not expired."""
    with _lock:
        return table_name in _partition_tables


add_flush_function(_clear_partition_tables)