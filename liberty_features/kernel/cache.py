"""
Process-wide jar caching toggle of the kernel loading layer.

Channel factories consult jar_caching_enabled() to decide whether jars they
open may be cached. While any installation run is active caching is forced
off so the install-map jar is released when its channel is closed. The
previous value is saved by the first run to enter and restored by the last
one to leave.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from archinstall import debug

_lock = threading.Lock()
_default_use_caches = True
_saved_status: bool | None = None
_active_runs = 0


def jar_caching_enabled() -> bool:
    with _lock:
        return _default_use_caches


def set_default_jar_caching(enabled: bool) -> None:
    global _default_use_caches
    with _lock:
        _default_use_caches = enabled


def disable_jar_caching() -> None:
    global _default_use_caches, _saved_status, _active_runs
    with _lock:
        if _active_runs == 0:
            _saved_status = _default_use_caches
            _default_use_caches = False
            debug("Disabled jar caching for feature installation")
        _active_runs += 1


def restore_jar_caching() -> None:
    global _default_use_caches, _saved_status, _active_runs
    with _lock:
        if _active_runs == 0:
            return
        _active_runs -= 1
        if _active_runs == 0 and _saved_status is not None:
            _default_use_caches = _saved_status
            _saved_status = None
            debug(f"Restored jar caching to {_default_use_caches}")


@contextmanager
def jar_caching_disabled() -> Iterator[None]:
    disable_jar_caching()
    try:
        yield
    finally:
        restore_jar_caching()
