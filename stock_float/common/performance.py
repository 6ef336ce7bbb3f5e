"""
재계산/수집 시간 측정

``project`` 재계산은 필터 디바운스 창 안에 끝나야 다음 입력을 놓치지 않습니다.
창을 넘기면 WARNING, 그 10배를 넘기면 ERROR 로 남깁니다.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Any, Callable, Optional, TypeVar

from ..core.config import CONFIG

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

BUDGET_SECONDS = CONFIG.scheduler.debounce_seconds
HARD_LIMIT_SECONDS = BUDGET_SECONDS * 10


def report_elapsed(operation: str, elapsed: float, records: Optional[int] = None) -> None:
    suffix = f", {records} records" if records is not None else ""
    if elapsed >= HARD_LIMIT_SECONDS:
        logger.error(f"{operation}: {elapsed:.3f}s{suffix} (limit {HARD_LIMIT_SECONDS:.2f}s)")
    elif elapsed >= BUDGET_SECONDS:
        logger.warning(f"{operation}: {elapsed:.3f}s{suffix} (budget {BUDGET_SECONDS:.2f}s)")
    else:
        logger.debug(f"{operation}: {elapsed:.3f}s{suffix}")


def measure_time(func: F) -> F:
    """
    감싼 함수의 소요 시간을 디바운스 예산과 비교해 로깅합니다.

    Examples:
        >>> @measure_time
        ... def project(store, filters):
        ...     ...
    """

    @functools.wraps(func)
    def timed(*args: Any, **kwargs: Any) -> Any:
        started = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            report_elapsed(func.__qualname__, time.perf_counter() - started)

    return timed  # type: ignore[return-value]


class PerformanceContext:
    """
    ``with`` 블록 하나의 소요 시간을 잽니다.

    블록 안에서 ``records`` 를 채우면 처리 건수가 함께 기록됩니다.

    Attributes:
        operation: 로그에 찍힐 작업 이름
        records: 처리한 레코드 수 (선택)
        elapsed: 블록 종료 후의 소요 시간 (초)
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self.records: Optional[int] = None
        self.elapsed = 0.0
        self._started = 0.0

    def __enter__(self) -> "PerformanceContext":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.elapsed = time.perf_counter() - self._started
        if exc_type is not None:
            logger.warning(f"{self.operation}: aborted after {self.elapsed:.3f}s ({exc_type.__name__})")
            return
        report_elapsed(self.operation, self.elapsed, self.records)


def measure_time_context(operation: str) -> PerformanceContext:
    return PerformanceContext(operation)
