"""
와이너리 창고 재고 시트 변환

창고 리포트(Client Description / On Hand / Allocated / Pending / Available)를
재고 카테고리의 캐노니컬 레코드로 변환합니다. Available 컬럼이 없거나 0 이면
On Hand - Allocated - Pending 으로 계산합니다.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Sequence

import pandas as pd

from ..common.parsing import clean_text, is_empty_record
from ..domain.descriptor import parse_descriptor, to_case_equivalents
from ..domain.exceptions import SheetStructureError
from ..domain.vocabulary import product_display_name
from .strategies import provenance, records_from_rows, to_frame

logger = logging.getLogger(__name__)

WAREHOUSE_LOCATION = "WineWorks Marlborough"

HEADER_MARKERS = ("PRODUCT DESCRIPTION", "SKU", "WW CODE", "ON HAND", "AVAILABLE", "ALLOCATED", "PENDING")
HEADER_SEARCH_ROWS = 10

WAREHOUSE_COLUMN_CANDIDATES: dict[str, Sequence[str]] = {
    "sku": ("Client Description", "Product Description (SKU)", "SKU", "Product", "Description"),
    "code": ("WW Code", "Code", "Item Code", "Product Code"),
    "on_hand": ("On Hand", "OnHand", "Stock On Hand"),
    "allocated": ("Allocated",),
    "pending": ("Pending",),
    "available": ("Available",),
}

_NON_NUMERIC = re.compile(r"[^\d.\-]")


def parse_stock_number(value: Any) -> float:
    """통화 기호/천 단위 구분자를 제거한 숫자. 해석할 수 없으면 0."""

    text = clean_text(value)
    if not text:
        return 0.0
    text = _NON_NUMERIC.sub("", re.sub(r"[$€£¥,]", "", text))
    try:
        return float(text)
    except ValueError:
        return 0.0


def _find_column(headers: Mapping[Any, str], terms: Sequence[str]) -> Any:
    for term in terms:
        upper_term = term.upper()
        for key, label in headers.items():
            header = label.upper()
            if header and (upper_term in header or header in upper_term):
                return key
    return None


def parse_warehouse_stock(rows: Any, sheet_name: str) -> pd.DataFrame:
    """창고 재고 시트를 캐노니컬 재고 레코드로 변환합니다."""

    records = records_from_rows(rows)
    if not records:
        return to_frame([])

    header_index = -1
    if not any(marker in clean_text(key).upper() for key in records[0] for marker in HEADER_MARKERS):
        for index, row in enumerate(records[:HEADER_SEARCH_ROWS]):
            values = [clean_text(value).upper() for value in row.values()]
            if any(marker in value for value in values for marker in HEADER_MARKERS):
                header_index = index
                break
        else:
            raise SheetStructureError(f"{sheet_name}: warehouse header row not found")

    if header_index >= 0:
        headers = {key: clean_text(value) or clean_text(key) for key, value in records[header_index].items()}
    else:
        headers = {key: clean_text(key) for key in records[0].keys()}
    columns = {name: _find_column(headers, terms) for name, terms in WAREHOUSE_COLUMN_CANDIDATES.items()}

    out: list[dict[str, Any]] = []
    for row in records[header_index + 1:]:
        if is_empty_record(row):
            continue
        sku = clean_text(row.get(columns["sku"])) if columns["sku"] is not None else ""
        code = clean_text(row.get(columns["code"])) if columns["code"] is not None else ""
        if not sku and not code:
            continue

        on_hand = parse_stock_number(row.get(columns["on_hand"])) if columns["on_hand"] is not None else 0.0
        allocated = parse_stock_number(row.get(columns["allocated"])) if columns["allocated"] is not None else 0.0
        pending = parse_stock_number(row.get(columns["pending"])) if columns["pending"] is not None else 0.0
        available = parse_stock_number(row.get(columns["available"])) if columns["available"] is not None else 0.0
        if columns["available"] is None or (available == 0 and on_hand > 0):
            available = max(0.0, on_hand - allocated - pending)

        descriptor = parse_descriptor(sku or code)
        out.append(
            {
                "market_code": descriptor.market,
                "variety_code": descriptor.variety_code,
                "brand_code": descriptor.brand_code,
                "brand_name": descriptor.brand,
                "vintage": descriptor.vintage,
                "location": WAREHOUSE_LOCATION,
                "product_name": product_display_name(descriptor.brand_code, descriptor.variety_code, fallback=sku or code),
                "quantity": to_case_equivalents(max(0.0, available), descriptor.pack_bottles),
                "period_month": "",
                "period_year": "",
                "source_sheet": sheet_name,
                "raw_row": {
                    **provenance(row),
                    "_on_hand": on_hand,
                    "_allocated": allocated,
                    "_pending": pending,
                },
            }
        )

    logger.debug(f"[{sheet_name}] {len(out)} warehouse stock rows parsed")
    return to_frame(out)
