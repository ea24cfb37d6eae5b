from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass


@dataclass
class _Accumulator:
    total_ms: float = 0.0


# Holds a mutable accumulator so endpoint tasks, which run on a copy of the
# request context, still add to the middleware's total.
_db_time: ContextVar[_Accumulator | None] = ContextVar("wms_db_time", default=None)


@contextmanager
def track_db_time() -> Iterator[None]:
    """Accumulate cursor time for the current request while the block runs."""
    token = _db_time.set(_Accumulator())
    try:
        yield
    finally:
        _db_time.reset(token)


def is_tracking() -> bool:
    return _db_time.get() is not None


def add_db_time(delta_ms: float) -> None:
    accumulator = _db_time.get()
    if accumulator is None:
        return
    accumulator.total_ms += delta_ms


def get_db_time_ms() -> float | None:
    accumulator = _db_time.get()
    if accumulator is None:
        return None
    return accumulator.total_ms
