"""
시트 레이아웃별 수집 전략

지역별 리포트는 각자 다른 표 구조를 갖습니다. 이 모듈은 레이아웃마다
하나의 변환 함수를 두고, 각 함수는 (원본 행 목록, 시트 이름)을 받아
캐노니컬 레코드 데이터프레임을 반환합니다.

공통 규칙:
- '_' 로 시작하는 키를 제외하고 모두 비어 있는 행은 버립니다.
- 한 행의 해석 실패는 그 행만 건너뛰고 계속 진행합니다.
- 원본 행은 raw_row 컬럼에 그대로 보존합니다.
- 수량은 제품 설명의 팩 수를 기준으로 12팩 케이스 단위로 환산합니다.

레이아웃 선택(시트 이름 스니핑)은 dispatch 모듈에 있습니다.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

import pandas as pd

from market_alias import normalize_market_value

from ..common.parsing import (
    Period,
    clean_text,
    is_empty_record,
    is_missing,
    parse_month_header,
    parse_period,
    parse_quantity,
    period_from_parts,
)
from ..domain.descriptor import parse_descriptor, to_case_equivalents
from ..domain.exceptions import SheetStructureError
from ..domain.models import StockTable
from ..domain.vocabulary import (
    VARIETY_CODES,
    brand_display_name,
    detect_brand_code,
    normalize_variety_code,
    product_display_name,
)
from .columns import build_column_lookup, find_column

logger = logging.getLogger(__name__)

Record = dict[str, Any]

# Errors a single malformed row may raise; the row is skipped.
ROW_ERRORS = (TypeError, ValueError, KeyError, AttributeError, OverflowError)
Strategy = Callable[[Sequence[Mapping[str, Any]], str], pd.DataFrame]

# ============================================================
# 레이아웃 태그 (닫힌 열거)
# ============================================================

CHANNEL_SALES = "channel-sales"
TRANSACTION_CARTONS = "transaction-cartons"
BANNER_PIVOT = "banner-pivot"
STATE_MONTHLY_MATRIX = "state-monthly-matrix"
SUPPLIER_RANK_REPORT = "supplier-rank-report"
GENERIC = "generic"

LAYOUT_TAGS = (
    CHANNEL_SALES,
    TRANSACTION_CARTONS,
    BANNER_PIVOT,
    STATE_MONTHLY_MATRIX,
    SUPPLIER_RANK_REPORT,
    GENERIC,
)

# 공급사 순위 리포트의 헤더 행 (시트 기준 0부터, 앞쪽은 제목 블록)
SUPPLIER_HEADER_ROW = 5

# AU-B 위치 문자열 최대 길이
LOCATION_MAX_LENGTH = 50

_STATE_LABEL = re.compile(r"\b(NSW|VIC|QLD|SA|WA)\b", re.IGNORECASE)
_DC_LABEL = re.compile(r"\bDC\b", re.IGNORECASE)

_MATRIX_SKIP_VALUES = {"TOTAL", "STATE", "WINES", "GRAND TOTAL"}
_MATRIX_SUBHEADER_VALUES = {"STATE", "WINES", "WINE NAME"}
_BANNER_SKIP_ITEMS = {"ITEM", "DESCRIPTION"}

# Generic fallback: candidate headers per canonical field.
GENERIC_COLUMN_ALIASES: dict[str, Sequence[str]] = {
    "market": ("Country", "Country Code", "Region", "Market", "CountryCode"),
    "variety": ("Variety", "Wine Name", "Product Code", "Wines", "SKU", "Code", "Item"),
    "product": ("Product Name", "Product", "Wine Name", "WineName", "Item", "Description", "Brand", "Variety"),
    "location": (
        "Location",
        "Distributor",
        "Distributor Name",
        "DistributorName",
        "Warehouse",
        "Site",
        "Customer/Project",
        "Banner",
        "State",
        "Channel",
    ),
    "quantity": (
        "Available",
        "Available Stock",
        "AvailableStock",
        "Stock",
        "Quantity",
        "Qty",
        "On Hand",
        "OnHand",
        "Current Stock",
        "CurrentStock",
        "Quantity - Cartons",
        "Month Sales 9LE",
        "Sales Qty (Singles)",
    ),
    "month": ("Month",),
    "year": ("Year",),
    "period": ("Period", "Month Year", "MonthYear", "Date"),
}


# ============================================================
# 공통 헬퍼
# ============================================================

def records_from_rows(rows: Any) -> list[Record]:
    """Accept a DataFrame or an iterable of mappings and return plain dict records."""

    if rows is None:
        return []
    if isinstance(rows, pd.DataFrame):
        frame = rows.astype(object).where(pd.notna(rows), None)
        return [dict(record) for record in frame.to_dict(orient="records")]
    records: list[Record] = []
    for row in rows:
        if isinstance(row, Mapping):
            records.append(dict(row))
    return records


def _json_safe(value: Any) -> Any:
    if is_missing(value):
        return None
    if isinstance(value, (pd.Timestamp, dt.datetime, dt.date)):
        return value.isoformat()
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        return value.item()
    return value


def provenance(row: Mapping[str, Any]) -> dict[str, Any]:
    """Copy *row* into a JSON-serialisable dict for the ``raw_row`` column."""

    return {str(key): _json_safe(value) for key, value in row.items()}


def canonical_row(
    *,
    descriptor_text: str,
    market: Any,
    location: str,
    quantity: float,
    period: Optional[Period],
    sheet_name: str,
    raw_row: Mapping[str, Any],
    variety_text: Any = None,
    brand_text: Any = None,
) -> Record:
    """Assemble one canonical record from already-extracted cell values."""

    descriptor = parse_descriptor(descriptor_text)

    variety_code = normalize_variety_code(variety_text) if clean_text(variety_text) else ""
    if not variety_code or variety_code not in VARIETY_CODES:
        variety_code = descriptor.variety_code or variety_code or normalize_variety_code(descriptor_text)

    brand_code = detect_brand_code(brand_text) if clean_text(brand_text) else ""
    brand_code = brand_code or descriptor.brand_code or detect_brand_code(descriptor_text)

    return {
        "market_code": normalize_market_value(market),
        "variety_code": variety_code,
        "brand_code": brand_code,
        "brand_name": brand_display_name(brand_code),
        "vintage": descriptor.vintage,
        "location": location,
        "product_name": product_display_name(brand_code, variety_code, fallback=descriptor_text),
        "quantity": to_case_equivalents(quantity, descriptor.pack_bottles),
        "period_month": period.month if period else "",
        "period_year": period.year if period else "",
        "source_sheet": sheet_name,
        "raw_row": provenance(raw_row),
    }


def to_frame(rows: Iterable[Record]) -> pd.DataFrame:
    return StockTable.from_dataframe(pd.DataFrame(list(rows))).data


def _non_empty(records: Iterable[Record]) -> list[Record]:
    return [record for record in records if not is_empty_record(record)]


def _cell(row: Mapping[str, Any], *keys: Optional[str]) -> Any:
    for key in keys:
        if key is not None and key in row and not is_missing(row[key]):
            return row[key]
    return None


def _promote_header(records: Sequence[Record], index: int) -> tuple[dict[str, str], list[Record]]:
    """Treat ``records[index]`` values as header labels for the rows that follow."""

    header_row = records[index]
    labels = {key: clean_text(value) for key, value in header_row.items()}
    relabelled: list[Record] = []
    for row in records[index + 1:]:
        relabelled.append({labels.get(key) or key: value for key, value in row.items()})
    return labels, relabelled


def _row_values_contain(row: Mapping[str, Any], *needles: str) -> bool:
    values = {clean_text(value).casefold() for value in row.values()}
    return all(needle.casefold() in values for needle in needles)


def _month_columns(keys: Iterable[Any]) -> dict[Any, Period]:
    columns: dict[Any, Period] = {}
    for key in keys:
        period = parse_month_header(key)
        if period is not None:
            columns[key] = period
    return columns


def _each_row(records: Sequence[Record], sheet_name: str, handler: Callable[[Record], Iterable[Record]]) -> list[Record]:
    """Run *handler* per row; a malformed row is logged and skipped."""

    out: list[Record] = []
    for index, row in enumerate(records):
        if is_empty_record(row):
            continue
        try:
            out.extend(handler(row))
        except ROW_ERRORS as exc:
            logger.debug(f"[{sheet_name}] skipping row {index}: {exc}")
    return out


# ============================================================
# 레이아웃 A: channel-sales (NZL)
# ============================================================

def parse_channel_sales(records: Sequence[Mapping[str, Any]], sheet_name: str) -> pd.DataFrame:
    """Country/State/Year/Month/Brand/Variety/Channel + ``Month Sales 9LE`` rows."""

    rows = records_from_rows(records)
    if not rows:
        return to_frame([])
    lookup = build_column_lookup(rows[0].keys())
    country_col = find_column(lookup, ("Country",))
    brand_col = find_column(lookup, ("Brand",))
    variety_col = find_column(lookup, ("Variety",))
    channel_col = find_column(lookup, ("Channel",))
    qty_col = find_column(lookup, ("Month Sales 9LE", "Sales 9LE", "Sales"))
    month_col = find_column(lookup, ("Month",))
    year_col = find_column(lookup, ("Year",))
    if qty_col is None:
        raise SheetStructureError(f"{sheet_name}: sales quantity column not found")

    def _handle(row: Record) -> list[Record]:
        country = clean_text(_cell(row, country_col))
        brand = clean_text(_cell(row, brand_col))
        quantity = parse_quantity(_cell(row, qty_col))
        if not country or not brand or not quantity:
            return []
        variety = clean_text(_cell(row, variety_col))
        return [
            canonical_row(
                descriptor_text=f"{brand} {variety}".strip(),
                market=country,
                location=clean_text(_cell(row, channel_col)).upper(),
                quantity=quantity,
                period=period_from_parts(_cell(row, month_col), _cell(row, year_col)),
                sheet_name=sheet_name,
                raw_row=row,
                variety_text=variety,
                brand_text=brand,
            )
        ]

    return to_frame(_non_empty(_each_row(rows, sheet_name, _handle)))


# ============================================================
# 레이아웃 B: transaction-cartons (AU-B)
# ============================================================

def parse_transaction_cartons(records: Sequence[Mapping[str, Any]], sheet_name: str) -> pd.DataFrame:
    """Transaction rows keyed by wine name, customer and state."""

    rows = records_from_rows(records)
    if not rows:
        return to_frame([])
    lookup = build_column_lookup(rows[0].keys())
    wine_col = find_column(lookup, ("Wine Name", "Wine"))
    qty_col = find_column(lookup, ("Quantity - Cartons", "Cartons", "Quantity"))
    customer_col = find_column(lookup, ("Customer/Project", "Customer"))
    state_col = find_column(lookup, ("State",))
    month_col = find_column(lookup, ("Month",))
    year_col = find_column(lookup, ("Year",))
    if wine_col is None or qty_col is None:
        raise SheetStructureError(f"{sheet_name}: wine name or carton quantity column not found")

    def _handle(row: Record) -> list[Record]:
        wine_name = clean_text(_cell(row, wine_col))
        quantity = parse_quantity(_cell(row, qty_col))
        if not wine_name or not quantity:
            return []
        customer = clean_text(_cell(row, customer_col))
        state = clean_text(_cell(row, state_col)).upper()
        location = f"{state}_{customer}" if state else customer
        return [
            canonical_row(
                descriptor_text=wine_name,
                market="au-b",
                location=location[:LOCATION_MAX_LENGTH],
                quantity=quantity,
                period=period_from_parts(_cell(row, month_col), _cell(row, year_col)),
                sheet_name=sheet_name,
                raw_row=row,
                variety_text=wine_name,
                brand_text=wine_name,
            )
        ]

    return to_frame(_non_empty(_each_row(rows, sheet_name, _handle)))


# ============================================================
# 레이아웃 C: banner-pivot (AU-C)
# ============================================================

def is_banner_pivot_header(keys: Iterable[Any]) -> bool:
    """DC/NSW/VIC 헤더가 모두 있으면 배너 피벗으로 간주합니다."""

    labels = [clean_text(key) for key in keys]
    return (
        any(_DC_LABEL.search(label) for label in labels)
        and any(re.search(r"\bNSW\b", label, re.IGNORECASE) for label in labels)
        and any(re.search(r"\bVIC\b", label, re.IGNORECASE) for label in labels)
    )


def parse_banner_pivot(records: Sequence[Mapping[str, Any]], sheet_name: str) -> pd.DataFrame:
    """Wide sheet: one row per item, one column per distribution centre or month.

    Distribution-centre columns become stock records with the state parsed
    from the header. When the sheet has ``Mon-YY`` columns instead, each
    month cell becomes a sales record located at the row's banner.
    """

    rows = records_from_rows(records)
    if not rows:
        return to_frame([])
    keys = list(rows[0].keys())
    lookup = build_column_lookup(keys)
    item_col = find_column(lookup, ("Item", "Product", "Description", "Product Description", "Wine", "Wine Name"))
    if item_col is None:
        item_col = keys[0]
    banner_col = find_column(lookup, ("Banner",))

    dc_cols = [
        key for key in keys
        if key != item_col and (_STATE_LABEL.search(clean_text(key)) or _DC_LABEL.search(clean_text(key)))
    ]
    month_cols = _month_columns(key for key in keys if key != item_col)
    if not dc_cols and not month_cols:
        raise SheetStructureError(f"{sheet_name}: no distribution-centre or month columns found")

    def _handle(row: Record) -> list[Record]:
        item = clean_text(_cell(row, item_col))
        upper = item.upper()
        if not item or "CURRENT QUANTITY" in upper or upper in _BANNER_SKIP_ITEMS:
            return []
        out: list[Record] = []
        for column in dc_cols:
            quantity = parse_quantity(row.get(column))
            if not quantity:
                continue
            match = _STATE_LABEL.search(clean_text(column))
            state = match.group(1).upper() if match else clean_text(column)
            out.append(
                canonical_row(
                    descriptor_text=item,
                    market="au-c",
                    location=state,
                    quantity=quantity,
                    period=None,
                    sheet_name=sheet_name,
                    raw_row=row,
                    variety_text=item,
                )
            )
        banner = clean_text(_cell(row, banner_col)).upper() or "AU-C"
        for column, period in month_cols.items():
            quantity = parse_quantity(row.get(column))
            if not quantity:
                continue
            out.append(
                canonical_row(
                    descriptor_text=item,
                    market="au-c",
                    location=banner,
                    quantity=quantity,
                    period=period,
                    sheet_name=sheet_name,
                    raw_row=row,
                    variety_text=item,
                )
            )
        return out

    return to_frame(_non_empty(_each_row(rows, sheet_name, _handle)))


# ============================================================
# 레이아웃 D: state-monthly-matrix (USA)
# ============================================================

def _find_matrix_header(rows: Sequence[Record]) -> tuple[int, dict[Any, Period], dict[Any, str]]:
    """Locate the month-header row among the first four rows.

    Returns ``(header_index, month_columns, labels)`` where *labels* maps
    record keys to the header text of that row. When no header row holds
    month labels the first record's own keys are used and the index is -1.
    """

    for index, row in enumerate(rows[:4]):
        by_value: dict[Any, Period] = {}
        for key, value in row.items():
            period = parse_month_header(value)
            if period is not None:
                by_value[key] = period
        if by_value:
            labels = {key: clean_text(value) for key, value in row.items()}
            return index, by_value, labels

    keys = list(rows[0].keys()) if rows else []
    return -1, _month_columns(keys), {key: clean_text(key) for key in keys}


def _is_matrix_subheader(row: Record) -> bool:
    """Label row under the month header ("State" / "Wines" cells, no quantities)."""

    values = {clean_text(value).upper() for value in row.values()}
    return bool(values & _MATRIX_SUBHEADER_VALUES)


def has_month_matrix_header(rows: Sequence[Record]) -> bool:
    """True when one of the first four rows, or the record keys, carry month labels."""

    return bool(rows) and bool(_find_matrix_header(rows)[1])


def parse_state_monthly_matrix(records: Sequence[Mapping[str, Any]], sheet_name: str) -> pd.DataFrame:
    """(state, wine) rows with one quantity per ``Mon-YY`` column; only positive cells count."""

    rows = records_from_rows(records)
    if not rows:
        return to_frame([])
    header_index, month_cols, labels = _find_matrix_header(rows)
    if not month_cols:
        raise SheetStructureError(f"{sheet_name}: no Mon-YY header found")

    label_lookup = {label.casefold(): key for key, label in labels.items() if label}
    state_key = label_lookup.get("state")
    wine_key = next(
        (label_lookup[name] for name in ("wine name", "wine", "wines", "product") if name in label_lookup),
        None,
    )

    def _handle(row: Record) -> list[Record]:
        values = list(row.values())
        state = clean_text(row.get(state_key)) if state_key is not None else clean_text(values[1] if len(values) > 1 else None)
        wine = clean_text(row.get(wine_key)) if wine_key is not None else clean_text(values[3] if len(values) > 3 else None)
        if not state or not wine or state.upper() in _MATRIX_SKIP_VALUES or wine.upper() in _MATRIX_SKIP_VALUES:
            return []
        out: list[Record] = []
        for column, period in month_cols.items():
            quantity = parse_quantity(row.get(column))
            if not quantity:
                continue
            out.append(
                canonical_row(
                    descriptor_text=wine,
                    market="usa",
                    location=state.upper(),
                    quantity=quantity,
                    period=period,
                    sheet_name=sheet_name,
                    raw_row=row,
                    variety_text=wine,
                )
            )
        return out

    start = header_index + 1
    if start < len(rows) and _is_matrix_subheader(rows[start]):
        start += 1
    return to_frame(_non_empty(_each_row(rows[start:], sheet_name, _handle)))


# ============================================================
# 레이아웃 E: supplier-rank-report (IRE)
# ============================================================

def _supplier_rows(rows: list[Record], sheet_name: str) -> list[Record]:
    lookup = build_column_lookup(rows[0].keys())
    if "rank" in lookup and "product" in lookup:
        return rows

    # The sheet's first row became the record keys, so sheet row N is records[N - 1].
    candidates = [SUPPLIER_HEADER_ROW - 1, SUPPLIER_HEADER_ROW]
    candidates.extend(index for index in range(min(10, len(rows))) if index not in candidates)
    for index in candidates:
        if 0 <= index < len(rows) and _row_values_contain(rows[index], "Rank", "Product"):
            _, relabelled = _promote_header(rows, index)
            return relabelled
    raise SheetStructureError(f"{sheet_name}: Rank/Product header row not found")


def is_supplier_rank_header(rows: Sequence[Record]) -> bool:
    """True when the keys or one of the first ten rows hold the Rank/Product header."""

    if not rows:
        return False
    lookup = build_column_lookup(rows[0].keys())
    if "rank" in lookup and "product" in lookup:
        return True
    return any(_row_values_contain(row, "Rank", "Product") for row in rows[:10])


def parse_supplier_rank_report(records: Sequence[Mapping[str, Any]], sheet_name: str) -> pd.DataFrame:
    """Supplier report with a title block above a ``Rank | SKU | Product | Mon-YY ...`` header."""

    rows = records_from_rows(records)
    if not rows:
        return to_frame([])
    rows = _supplier_rows(rows, sheet_name)
    if not rows:
        return to_frame([])
    keys: list[Any] = []
    for row in rows:
        keys.extend(key for key in row.keys() if key not in keys)
    lookup = build_column_lookup(keys)
    rank_col = find_column(lookup, ("Rank",))
    sku_col = lookup.get("sku")
    product_col = lookup.get("product")
    month_cols = _month_columns(keys)

    def _handle(row: Record) -> list[Record]:
        rank = clean_text(_cell(row, rank_col))
        product = clean_text(_cell(row, product_col))
        if not product or product.casefold() == "product":
            return []
        if not re.match(r"^\d+", rank):
            return []
        out: list[Record] = []
        for column, period in month_cols.items():
            quantity = parse_quantity(row.get(column))
            if not quantity:
                continue
            out.append(
                canonical_row(
                    descriptor_text=product,
                    market="ire",
                    location="IRELAND",
                    quantity=quantity,
                    period=period,
                    sheet_name=sheet_name,
                    raw_row={**row, "_sku": clean_text(_cell(row, sku_col)), "_rank": rank},
                    variety_text=product,
                )
            )
        return out

    return to_frame(_non_empty(_each_row(rows, sheet_name, _handle)))


# ============================================================
# 폴백: generic
# ============================================================

def _generic_columns(headers: Mapping[Any, str]) -> dict[str, Optional[Any]]:
    lookup = {label.casefold(): key for key, label in headers.items() if label}
    columns: dict[str, Optional[Any]] = {}
    for field_name, aliases in GENERIC_COLUMN_ALIASES.items():
        columns[field_name] = None
        for alias in aliases:
            if alias.casefold() in lookup:
                columns[field_name] = lookup[alias.casefold()]
                break
    return columns


def parse_generic(records: Sequence[Mapping[str, Any]], sheet_name: str) -> pd.DataFrame:
    """Fuzzy header matching for sheets that match no known layout.

    Works on key-as-header rows directly. When none of the keys look like a
    quantity header (value-as-key rows such as ``Column_1``), the first rows
    are scanned for a row whose values are the headers.
    """

    rows = records_from_rows(records)
    if not rows:
        return to_frame([])

    keys: list[Any] = []
    for row in rows[:20]:
        keys.extend(key for key in row.keys() if key not in keys)
    headers: dict[Any, str] = {key: clean_text(key) for key in keys}
    columns = _generic_columns(headers)
    data_rows = rows

    if columns["quantity"] is None:
        for index, row in enumerate(rows[:20]):
            candidate = {key: clean_text(value) for key, value in row.items()}
            candidate_columns = _generic_columns(candidate)
            if candidate_columns["quantity"] is not None:
                headers, columns, data_rows = candidate, candidate_columns, rows[index + 1:]
                break
    if columns["quantity"] is None:
        raise SheetStructureError(f"{sheet_name}: no quantity column found")

    def _handle(row: Record) -> list[Record]:
        quantity = parse_quantity(_cell(row, columns["quantity"]))
        if quantity is None:
            return []
        variety_text = clean_text(_cell(row, columns["variety"]))
        product_text = clean_text(_cell(row, columns["product"]))
        descriptor_text = product_text or variety_text
        period = parse_period(_cell(row, columns["period"])) or period_from_parts(
            _cell(row, columns["month"]), _cell(row, columns["year"])
        )
        return [
            canonical_row(
                descriptor_text=descriptor_text,
                market=clean_text(_cell(row, columns["market"])) or sheet_name,
                location=clean_text(_cell(row, columns["location"])) or sheet_name,
                quantity=quantity,
                period=period,
                sheet_name=sheet_name,
                raw_row=row,
                variety_text=variety_text or product_text,
            )
        ]

    return to_frame(_non_empty(_each_row(data_rows, sheet_name, _handle)))


# ============================================================
# 전략 레지스트리
# ============================================================

STRATEGIES: dict[str, Strategy] = {
    CHANNEL_SALES: parse_channel_sales,
    TRANSACTION_CARTONS: parse_transaction_cartons,
    BANNER_PIVOT: parse_banner_pivot,
    STATE_MONTHLY_MATRIX: parse_state_monthly_matrix,
    SUPPLIER_RANK_REPORT: parse_supplier_rank_report,
    GENERIC: parse_generic,
}
