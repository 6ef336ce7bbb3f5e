"""
캐노니컬 스토어

카테고리(재고/수출/판매) -> 시트 이름 -> 캐노니컬 데이터프레임 구조의
불변 값 객체입니다. 수집 때마다 새 스토어를 만들어 파이프라인에 그대로
전달하며, 어떤 단계도 스토어 내부를 변경하지 않습니다.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import pandas as pd

from ..common.parsing import is_missing
from ..domain.models import (
    ShipmentTable,
    StockTable,
    empty_shipment_frame,
    empty_stock_frame,
)

STOCK_ON_HAND = "stock-on-hand"
EXPORTS = "exports"
SALES_DEPLETION = "sales-depletion"

CATEGORIES = (STOCK_ON_HAND, EXPORTS, SALES_DEPLETION)


def _conform(category: str, frame: pd.DataFrame | None) -> pd.DataFrame:
    if category == EXPORTS:
        return ShipmentTable.from_dataframe(frame).data
    return StockTable.from_dataframe(frame).data


@dataclass(frozen=True)
class CanonicalStore:
    """
    카테고리별 시트 데이터를 보관하는 불변 스토어.

    Attributes:
        sheets: category -> {sheet_name: canonical frame}

    Examples:
        >>> store = CanonicalStore().with_sheets("exports", {"Orders": frame})
        >>> store.shipment_table().data
    """

    sheets: Mapping[str, Mapping[str, pd.DataFrame]] = field(default_factory=dict)

    def with_sheets(self, category: str, frames: Mapping[str, pd.DataFrame]) -> "CanonicalStore":
        """Return a new store where *frames* replace same-named sheets of *category*."""

        if category not in CATEGORIES:
            raise ValueError(f"Unknown category: {category}")
        updated = {name: dict(existing) for name, existing in self.sheets.items()}
        bucket = updated.setdefault(category, {})
        for sheet_name, frame in frames.items():
            bucket[str(sheet_name)] = _conform(category, frame)
        return CanonicalStore(sheets=updated)

    def with_sheet(self, category: str, sheet_name: str, frame: pd.DataFrame) -> "CanonicalStore":
        return self.with_sheets(category, {sheet_name: frame})

    def without_category(self, category: str) -> "CanonicalStore":
        return CanonicalStore(sheets={name: dict(v) for name, v in self.sheets.items() if name != category})

    def sheet_names(self, category: str) -> list[str]:
        return list(self.sheets.get(category, {}).keys())

    def sheet_counts(self, category: str) -> dict[str, int]:
        return {name: len(frame) for name, frame in self.sheets.get(category, {}).items()}

    def records(self, category: str) -> pd.DataFrame:
        """All sheets of *category* concatenated in insertion order."""

        frames = [frame for frame in self.sheets.get(category, {}).values() if not frame.empty]
        if not frames:
            return empty_shipment_frame() if category == EXPORTS else empty_stock_frame()
        return pd.concat(frames, ignore_index=True)

    def record_count(self, category: str) -> int:
        return sum(self.sheet_counts(category).values())

    def has_records(self, category: str) -> bool:
        return self.record_count(category) > 0

    def stock_table(self) -> StockTable:
        return StockTable.from_dataframe(self.records(STOCK_ON_HAND))

    def sales_table(self) -> StockTable:
        return StockTable.from_dataframe(self.records(SALES_DEPLETION))

    def shipment_table(self) -> ShipmentTable:
        return ShipmentTable.from_dataframe(self.records(EXPORTS))


# ============================================================
# JSON 직렬화 (캐시 저장용)
# ============================================================

def _json_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_value(v) for v in value]
    if is_missing(value):
        return None
    if isinstance(value, (pd.Timestamp, dt.datetime, dt.date)):
        return pd.Timestamp(value).strftime("%Y-%m-%d")
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        return value.item()
    return value


def frame_to_records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    """캐노니컬 데이터프레임을 JSON 직렬화 가능한 레코드 목록으로 변환합니다."""

    return [
        {str(column): _json_value(value) for column, value in record.items()}
        for record in frame.to_dict(orient="records")
    ]


def records_to_frame(category: str, records: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """:func:`frame_to_records` 의 역변환 (스키마 보정 포함)."""

    rows = [dict(record) for record in records]
    if not rows:
        return _conform(category, None)
    return _conform(category, pd.DataFrame(rows))
