"""Session store backends.

Both backends satisfy the same ``SessionStore`` contract; callers never
need to know which one is wired in.
"""

from .base import SessionStore
from .memory import MemorySessionStore
from .sql import SqlSessionStore

__all__ = ['SessionStore', 'MemorySessionStore', 'SqlSessionStore', 'build_store']


def build_store(config) -> SessionStore:
    kind = (config.get('SESSION_STORE') or 'sql').lower()
    timeout = float(config.get('STORE_LOCK_TIMEOUT_SEC', 5))
    if kind == 'memory':
        return MemorySessionStore(lock_timeout=timeout)
    if kind == 'sql':
        return SqlSessionStore(lock_timeout=timeout)
    raise ValueError(f"Unknown SESSION_STORE {kind!r}")
