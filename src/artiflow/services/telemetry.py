"""Operation timing for service methods.

Off by default; ``--verbose`` turns it on.  When on, ``@traced`` records
the wall time of each call into ``ServiceResult.meta["telemetry"]`` and
logs a ``span.complete`` event.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from contextvars import ContextVar
from typing import ParamSpec, TypeVar

import structlog

from artiflow.services.result import ServiceResult

log = structlog.get_logger("artiflow.telemetry")

_enabled: ContextVar[bool] = ContextVar("_telemetry_enabled", default=False)

_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Time a service method when telemetry is enabled."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _enabled.get():
            return func(*args, **kwargs)

        start = time.perf_counter()
        result = func(*args, **kwargs)
        duration_ms = round((time.perf_counter() - start) * 1000, 2)

        ok = not isinstance(result, ServiceResult) or result.ok
        log.debug("span.complete", span_name=func.__qualname__, duration_ms=duration_ms, ok=ok)
        if isinstance(result, ServiceResult):
            telemetry = {"name": func.__qualname__, "duration_ms": duration_ms}
            meta = {**(result.meta or {}), "telemetry": telemetry}
            result = result.model_copy(update={"meta": meta})  # type: ignore[assignment]
        return result

    return wrapper


def enable_telemetry() -> None:
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)
