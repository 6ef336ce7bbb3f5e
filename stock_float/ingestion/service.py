"""
수집 진입점

카테고리별 변환 함수와, 업로드 한 건(워크북)을 처리해 스토어 갱신 ->
캐시 저장 -> 변경 알림까지 수행하는 IngestionService 를 제공합니다.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

import pandas as pd

from ..common.performance import measure_time_context
from ..domain.exceptions import IngestionError
from ..domain.models import empty_shipment_frame, empty_stock_frame
from .dispatch import parse_sheet
from .events import ChangeNotifier, IngestionEvent
from .exports import parse_exports
from .persistence import CategoryCache
from .store import EXPORTS, SALES_DEPLETION, STOCK_ON_HAND, CanonicalStore
from .warehouse import parse_warehouse_stock
from .workbook import WorkbookSource, read_workbook

logger = logging.getLogger(__name__)

# 창고 재고 업로드 종류 (저장 카테고리는 stock-on-hand)
WAREHOUSE_STOCK = "warehouse-stock"

SheetParser = Callable[[Any, str], pd.DataFrame]


# ============================================================
# 카테고리별 변환 함수
# ============================================================

def ingest_stock_on_hand(rows: Any, sheet_name: str) -> pd.DataFrame:
    return parse_sheet(rows, sheet_name)


def ingest_sales_depletion(rows: Any, sheet_name: str) -> pd.DataFrame:
    return parse_sheet(rows, sheet_name)


def ingest_exports(rows: Any, sheet_name: str, *, today: Optional[pd.Timestamp] = None) -> pd.DataFrame:
    try:
        return parse_exports(rows, sheet_name, today=today)
    except IngestionError as exc:
        logger.warning(f"Export sheet '{sheet_name}' skipped: {exc}")
        return empty_shipment_frame()


def ingest_warehouse_stock(rows: Any, sheet_name: str) -> pd.DataFrame:
    try:
        return parse_warehouse_stock(rows, sheet_name)
    except IngestionError as exc:
        logger.warning(f"Warehouse sheet '{sheet_name}' skipped: {exc}")
        return empty_stock_frame()


def _empty_frame(category: str) -> pd.DataFrame:
    return empty_shipment_frame() if category == EXPORTS else empty_stock_frame()


# 업로드 종류 -> (저장 카테고리, 시트 변환 함수)
UPLOAD_KINDS: dict[str, tuple[str, SheetParser]] = {
    STOCK_ON_HAND: (STOCK_ON_HAND, ingest_stock_on_hand),
    SALES_DEPLETION: (SALES_DEPLETION, ingest_sales_depletion),
    EXPORTS: (EXPORTS, ingest_exports),
    WAREHOUSE_STOCK: (STOCK_ON_HAND, ingest_warehouse_stock),
}


@dataclass(frozen=True)
class UploadStatus:
    """업로드 한 건의 처리 결과."""

    ok: bool
    message: str
    record_count: int = 0
    sheet_counts: Mapping[str, int] = field(default_factory=dict)


# ============================================================
# 수집 서비스
# ============================================================

class IngestionService:
    """
    업로드를 캐노니컬 스토어에 반영합니다.

    업로드마다 시트를 각각 변환하고(한 시트의 실패는 빈 시트가 될 뿐
    다른 시트에 영향 없음), 같은 이름의 시트를 새 결과로 교체한
    스토어를 만든 뒤 캐시에 저장하고 변경 이벤트를 발행합니다.
    """

    def __init__(
        self,
        store: Optional[CanonicalStore] = None,
        *,
        cache: Optional[CategoryCache] = None,
        notifier: Optional[ChangeNotifier] = None,
    ) -> None:
        self._store = store or CanonicalStore()
        self.cache = cache
        self.notifier = notifier or ChangeNotifier()

    @property
    def store(self) -> CanonicalStore:
        return self._store

    def ingest_sheets(self, sheets: Mapping[str, Any], kind: str) -> UploadStatus:
        """시트 이름 -> 원본 행 매핑을 변환해 스토어에 반영합니다."""

        if kind not in UPLOAD_KINDS:
            return UploadStatus(ok=False, message=f"error: unknown upload kind '{kind}'")
        category, parser = UPLOAD_KINDS[kind]

        frames: dict[str, pd.DataFrame] = {}
        for sheet_name, rows in sheets.items():
            try:
                frames[str(sheet_name)] = parser(rows, str(sheet_name))
            except IngestionError as exc:
                logger.warning(f"[{kind}] sheet '{sheet_name}' skipped: {exc}")
                frames[str(sheet_name)] = _empty_frame(category)
            logger.debug(f"[{kind}] sheet '{sheet_name}': {len(frames[str(sheet_name)])} records")

        sheet_counts = {name: int(len(frame)) for name, frame in frames.items()}
        total = sum(sheet_counts.values())
        if total == 0:
            return UploadStatus(ok=False, message="error: no records found", sheet_counts=sheet_counts)

        self._store = self._store.with_sheets(category, frames)
        if self.cache is not None:
            self.cache.save(category, self._store.sheets.get(category, {}))
        self.notifier.publish(IngestionEvent(category=category, sheet_count=len(frames), record_count=total))

        logger.info(f"[{kind}] processed {total} records from {len(frames)} sheet(s)")
        return UploadStatus(ok=True, message=f"processed {total} records", record_count=total, sheet_counts=sheet_counts)

    def ingest_workbook(self, source: WorkbookSource, kind: str, *, filename: Optional[str] = None) -> UploadStatus:
        """워크북/CSV 한 건을 읽어 :meth:`ingest_sheets` 로 처리합니다."""

        with measure_time_context(f"ingest_workbook[{kind}]") as timing:
            try:
                sheets = read_workbook(source, filename=filename)
            except IngestionError as exc:
                logger.warning(f"Upload rejected: {exc}")
                return UploadStatus(ok=False, message=f"error: {exc}")
            status = self.ingest_sheets(sheets, kind)
            timing.records = status.record_count
            return status
