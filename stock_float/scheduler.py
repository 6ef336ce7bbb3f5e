"""
재계산 스케줄러

스토어 변경은 즉시, 필터 변경은 디바운스(기본 150ms) 후 ``project`` 를
다시 실행합니다. 실행마다 세대(generation) 번호를 붙이고, 끝났을 때
더 최신 트리거가 있었다면 결과를 버립니다.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from .core.config import CONFIG
from .domain.filters import FilterSelection
from .domain.models import ProjectionResult
from .ingestion.service import IngestionService
from .ingestion.store import CanonicalStore

logger = logging.getLogger(__name__)

ProjectFn = Callable[[CanonicalStore, FilterSelection], ProjectionResult]
ResultCallback = Callable[[ProjectionResult], None]
TimerFactory = Callable[..., Any]


class RecomputeScheduler:
    """
    ``project`` 재실행을 조율합니다.

    Attributes:
        debounce_seconds: 필터 변경 병합 대기 시간
        last_result: 마지막으로 발행된 결과
    """

    def __init__(
        self,
        project_fn: ProjectFn,
        on_result: ResultCallback,
        *,
        store: Optional[CanonicalStore] = None,
        filters: Optional[FilterSelection] = None,
        debounce_seconds: float = CONFIG.scheduler.debounce_seconds,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self.project_fn = project_fn
        self.on_result = on_result
        self.debounce_seconds = debounce_seconds
        self.timer_factory = timer_factory
        self.last_result: Optional[ProjectionResult] = None

        self._store = store or CanonicalStore()
        self._filters = filters or FilterSelection()
        self._generation = 0
        self._timer: Any = None
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    # ========================================
    # 트리거
    # ========================================

    def store_changed(self, store: CanonicalStore) -> None:
        """새 스토어로 즉시 재계산합니다."""

        with self._lock:
            self._store = store
            self._cancel_timer()
            self._generation += 1
            generation = self._generation
        self._run(generation)

    def filters_changed(self, filters: FilterSelection) -> None:
        """필터 변경을 디바운스 창 안에서 병합한 뒤 재계산합니다."""

        with self._lock:
            self._filters = filters
            self._cancel_timer()
            self._generation += 1
            generation = self._generation
            timer = self.timer_factory(self.debounce_seconds, self._run, args=(generation,))
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._timer = timer
        timer.start()

    def flush(self) -> None:
        """대기 중인 디바운스가 있으면 지금 실행합니다."""

        with self._lock:
            if self._timer is None:
                return
            self._cancel_timer()
            generation = self._generation
        self._run(generation)

    def cancel(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._generation += 1

    def connect(self, service: IngestionService) -> Callable[[], None]:
        """수집 서비스의 변경 이벤트마다 store_changed 를 호출하도록 구독합니다."""

        return service.notifier.subscribe(lambda event: self.store_changed(service.store))

    # ========================================
    # 실행
    # ========================================

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _run(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug(f"Skipping stale recompute (generation {generation} < {self._generation})")
                return
            self._timer = None
            store, filters = self._store, self._filters

        result = self.project_fn(store, filters)

        with self._lock:
            if generation != self._generation:
                logger.debug(f"Discarding superseded result (generation {generation} < {self._generation})")
                return
            self.last_result = result
        self.on_result(result)
