"""
수출(선적) 시트 변환

수출 워크북은 주문 헤더 행(회사, 출고일) 아래에 와인 라인이 이어지는
구조입니다. 헤더 행을 찾은 뒤 회사/출고일을 아래 행으로 전파(forward-fill)
하고, 각 와인 라인을 ShipmentRecord 로 변환합니다.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional, Sequence

import pandas as pd

from market_alias import normalize_market_value

from ..common.parsing import clean_text, is_empty_record, parse_date, parse_quantity
from ..core.config import CONFIG, LeadTimeConfig
from ..domain.descriptor import parse_descriptor
from ..domain.exceptions import SheetStructureError
from ..domain.models import STATUS_ACTIVE, STATUS_COMPLETE, ShipmentTable
from ..domain.vocabulary import detect_brand_code, product_display_name
from .columns import fuzzy_find_column
from .strategies import ROW_ERRORS, provenance, records_from_rows

logger = logging.getLogger(__name__)

# 헤더 행으로 인정하는 키워드 (앞 20행 안에서 탐색)
HEADER_MARKERS = ("COMPANY", "CUSTOMER", "PRODUCT DESCRIPTION", "STATUS")
HEADER_SEARCH_ROWS = 20

# 거래처 이름 -> 시장 코드
COMPANY_TO_MARKET: dict[str, str] = {
    "Dreyfus": "usa",
    "Maverick Beverage Company Texas": "usa",
    "Boston wine Company": "usa",
    "Vehrs Distributing Company": "usa",
    "Breakthrough Beverage": "usa",
    "Western Wine Services": "usa",
    "Winebow Fine Wine": "usa",
    "Western Carriers": "usa",
    "Favourite Brands TX": "usa",
    "Landmark": "usa",
    "Coles Group Co Ltd": "au",
    "The Bond": "au",
    "Bacchus": "au",
    "Colonial Trade Co Ltd": "jap",
    "Degustation": "den",
    "Wine Express": "pol",
    "LCBO": "ca",
    "The Battle Store General Trading": "ae",
    "The Bottle Store": "ae",
    "Centaurus": "ae",
    "Curious Wines": "ire",
    "Decorum": "gb",
    "Quality Wine": "gb",
    "Jean Arnaud": "nl",
    "Sofresh": "gr",
    "Napa Cellar": "kr",
    "Avengere": "kr",
    "Don Remi": "ph",
    "Enoesa": "cl",
    "Francisco Merte": "nzl",
    "PCL 201": "nzl",
    "Wine Bitters": "nzl",
}

DEFAULT_EXPORT_MARKET = "nzl"

EXPORT_COLUMN_CANDIDATES: dict[str, Sequence[str]] = {
    "product": ("Product Description", "Stock", "Product Description (SKU)", "Product", "SKU", "Item", "Code"),
    "customer": ("Company", "Customer", "Distributor"),
    "cases": ("Cases",),
    "status": ("Status", "Order Status", "Shipment Status"),
    "departing": ("Departing NZ", "Departing", "Departure", "ETD"),
    "shipped": ("Shipped from WWM", "Date Shipped", "Shipped Date", "Shipped from", "Shipped"),
    "arrival": ("Date Arrival", "Arrival Date", "Arrival", "Date Arrived", "ETA"),
    "forwarder": ("Freight Forwarder", "Freight", "Forwarder", "Carrier"),
    "case_size": ("Case Size", "CaseSize", "Pack", "Pack Size"),
    "market": ("Market", "Destination Market", "Destination Country"),
    "state": ("State", "Destination State", "Ship State", "Ship To State"),
    "transit_days": ("Shipping Days", "Transit Days"),
}


def market_from_company(company: str) -> str:
    """Look up a customer's market: exact, case-insensitive, then partial name match."""

    name = clean_text(company)
    if not name:
        return ""
    if name in COMPANY_TO_MARKET:
        return COMPANY_TO_MARKET[name]

    lowered = name.casefold()
    for key, market in COMPANY_TO_MARKET.items():
        if key.casefold() == lowered:
            return market

    base = lowered.split("(")[0].strip()
    for key, market in COMPANY_TO_MARKET.items():
        key_lower = key.casefold()
        if key_lower in lowered or lowered in key_lower:
            return market
        key_base = key_lower.split("(")[0].strip()
        if base and (key_base in base or base in key_base):
            return market
    return ""


def case_size_factor(raw: Any) -> float:
    """12팩 환산 계수 (12 -> 1.0, 6 -> 0.5). 값이 없으면 1.0."""

    digits = re.sub(r"[^\d.]", "", clean_text(raw))
    try:
        size = float(digits)
    except ValueError:
        return 1.0
    if size <= 0:
        return 1.0
    return size / 12


def collapse_status(
    status_text: str,
    shipped: Optional[pd.Timestamp],
    arrival: Optional[pd.Timestamp],
    today: pd.Timestamp,
) -> str:
    """자유 형식 상태를 active(선적 대기/운송중) / complete 로 축약합니다."""

    text = status_text.strip().lower()
    if "complete" in text:
        return STATUS_COMPLETE
    if "waiting" in text or "transit" in text:
        return STATUS_ACTIVE
    if shipped is not None and arrival is None:
        return STATUS_ACTIVE
    if shipped is not None and arrival is not None and arrival > today:
        return STATUS_ACTIVE
    return STATUS_COMPLETE


def _find_header_row(records: Sequence[Mapping[str, Any]]) -> int:
    """Index of the header row; -1 when the record keys already are the headers."""

    keys = [clean_text(key).upper() for key in records[0].keys()]
    if any(marker in key for key in keys for marker in HEADER_MARKERS):
        return -1
    for index, row in enumerate(records[:HEADER_SEARCH_ROWS]):
        values = [clean_text(value).upper() for value in row.values()]
        if any(marker in value for value in values for marker in HEADER_MARKERS):
            return index
    for index, row in enumerate(records[:5]):
        if len(row) > 3:
            return index
    raise SheetStructureError("no header row found in the first rows")


def parse_exports(
    rows: Any,
    sheet_name: str,
    *,
    today: Optional[pd.Timestamp] = None,
    lead_times: LeadTimeConfig = CONFIG.lead_time,
) -> pd.DataFrame:
    """
    수출 시트를 ShipmentTable 스키마의 데이터프레임으로 변환합니다.

    Args:
        rows: 원본 행 (데이터프레임 또는 매핑 목록)
        sheet_name: 시트 이름 (거래처가 비어 있을 때 대체값)
        today: 상태 판정 기준일 (기본값: 오늘)
        lead_times: 시장별 리드타임 설정

    Returns:
        SHIPMENT_COLUMNS 스키마의 데이터프레임. 제품이 없거나 케이스가 0 이하인 행은 제외됩니다.

    Raises:
        SheetStructureError: 헤더 행을 찾을 수 없을 때
    """
    records = records_from_rows(rows)
    if not records:
        return ShipmentTable.from_dataframe(None).data
    today = (today or pd.Timestamp.today()).normalize()

    # ========================================
    # 1단계: 헤더 행 탐색 및 컬럼 매칭
    # ========================================
    header_index = _find_header_row(records)
    if header_index >= 0:
        headers = {key: value for key, value in records[header_index].items()}
        for key in headers:
            if not clean_text(headers[key]):
                headers[key] = key
    else:
        headers = {key: key for key in records[0].keys()}
    columns = {name: fuzzy_find_column(headers, candidates) for name, candidates in EXPORT_COLUMN_CANDIDATES.items()}
    if columns["product"] is None or columns["cases"] is None:
        raise SheetStructureError(f"{sheet_name}: product or cases column not found")
    shipped_col = columns["departing"] or columns["shipped"]
    logger.debug(f"[{sheet_name}] export columns: {columns}")

    # ========================================
    # 2단계: 거래처/출고일 전파하며 와인 라인 변환
    # ========================================
    current_customer = ""
    current_shipped: Optional[pd.Timestamp] = None
    shipments: list[dict[str, Any]] = []

    for index, row in enumerate(records[header_index + 1:], start=header_index + 1):
        if is_empty_record(row):
            continue
        try:
            raw_customer = clean_text(row.get(columns["customer"])) if columns["customer"] else ""
            if raw_customer:
                current_customer = raw_customer
            shipped_cell = parse_date(row.get(shipped_col)) if shipped_col else None
            if shipped_cell is not None:
                current_shipped = shipped_cell

            shipment = _export_line(
                row,
                columns,
                customer=raw_customer or current_customer or sheet_name,
                shipped=current_shipped,
                sheet_name=sheet_name,
                today=today,
                lead_times=lead_times,
            )
        except ROW_ERRORS as exc:
            logger.debug(f"[{sheet_name}] skipping export row {index}: {exc}")
            continue
        if shipment is not None:
            shipments.append(shipment)

    logger.debug(f"[{sheet_name}] {len(shipments)} export lines parsed")
    return ShipmentTable.from_dataframe(pd.DataFrame(shipments)).data


def _export_line(
    row: Mapping[str, Any],
    columns: Mapping[str, Optional[str]],
    *,
    customer: str,
    shipped: Optional[pd.Timestamp],
    sheet_name: str,
    today: pd.Timestamp,
    lead_times: LeadTimeConfig,
) -> Optional[dict[str, Any]]:
    """와인 라인 한 행을 선적 레코드로 변환합니다. 제품/케이스가 없으면 None."""

    product = clean_text(row.get(columns["product"]))
    cases = parse_quantity(row.get(columns["cases"]))
    if not product or not cases:
        return None

    descriptor = parse_descriptor(product)
    brand_code = descriptor.brand_code or detect_brand_code(product)
    arrival = parse_date(row.get(columns["arrival"])) if columns["arrival"] else None
    status_text = clean_text(row.get(columns["status"])) if columns["status"] else ""

    explicit_market = clean_text(row.get(columns["market"])) if columns["market"] else ""
    market = (
        normalize_market_value(explicit_market)
        or descriptor.market
        or market_from_company(customer)
        or DEFAULT_EXPORT_MARKET
    )
    transit_days = parse_quantity(row.get(columns["transit_days"])) if columns["transit_days"] else None

    return {
        "market_code": market,
        "variety_code": descriptor.variety_code,
        "brand_code": brand_code,
        "vintage": descriptor.vintage,
        "product_name": product_display_name(brand_code, descriptor.variety_code, fallback=product),
        "customer": customer,
        "state": clean_text(row.get(columns["state"])) if columns["state"] else "",
        "cases": cases * case_size_factor(row.get(columns["case_size"]) if columns["case_size"] else None),
        "status": collapse_status(status_text, shipped, arrival, today),
        "status_text": status_text.lower(),
        "shipped_date": shipped,
        "arrival_date": arrival,
        "freight_forwarder": clean_text(row.get(columns["forwarder"])) if columns["forwarder"] else "",
        "lead_time_months": lead_times.months_for(market),
        "transit_days": transit_days,
        "source_sheet": sheet_name,
        "raw_row": provenance(row),
    }
