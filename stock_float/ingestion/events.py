"""Change notification for ingestion batches."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionEvent:
    """한 카테고리 업로드가 끝났음을 알리는 이벤트."""

    category: str
    sheet_count: int
    record_count: int


Listener = Callable[[IngestionEvent], None]


class ChangeNotifier:
    """Minimal publish/subscribe hub for "data changed" events."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: IngestionEvent) -> None:
        logger.debug(f"Publishing {event} to {len(self._listeners)} listener(s)")
        for listener in list(self._listeners):
            listener(event)
