"""
필터 선택 및 기간 계산

이 모듈은 대시보드 필터 선택(시장, 유통사, 품종, 연도, 날짜 범위,
전망 개월 수)을 검증하고, 재고/선적 테이블에 적용하며, 프로젝션할
기간 목록("YYYY-MM")을 계산합니다.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import pandas as pd

from market_alias import available_markets, normalize_market_series, normalize_market_value

from ..common.parsing import clean_text
from ..core.config import CONFIG
from ..planning.aggregation import clean_location
from .exceptions import FilterError, ValidationError
from .models import ShipmentTable, StockTable
from .vocabulary import normalize_variety_code

if TYPE_CHECKING:
    from ..ingestion.store import CanonicalStore

logger = logging.getLogger(__name__)

ALL = "all"


def _is_all(value: Any) -> bool:
    text = clean_text(value)
    return not text or text.casefold() == ALL


def _to_timestamp(value: Any, field_name: str) -> Optional[pd.Timestamp]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        raise ValidationError(f"{field_name} is not a valid date: {value!r}")
    return pd.Timestamp(ts).normalize()


def _distributor_text(value: Any) -> str:
    return clean_location(value).replace("_", " ").lower()


# ========================================
# 필터 선택
# ========================================


@dataclass(frozen=True)
class FilterSelection:
    """
    대시보드 필터 선택값.

    "all" 또는 빈 값은 해당 조건을 적용하지 않음을 뜻합니다.
    forward_months 가 주어지면 전망 모드(이번 달부터 N개월),
    아니면 날짜 범위(또는 재고 데이터의 기간 범위)를 사용합니다.

    Raises:
        ValidationError: date_from > date_to, 음수 전망 개월, 4자리가 아닌 연도
    """

    market: str = ALL
    distributor: str = ALL
    variety: str = ALL
    year: str = ALL
    date_from: Optional[pd.Timestamp] = None
    date_to: Optional[pd.Timestamp] = None
    forward_months: Optional[int] = None

    def __post_init__(self) -> None:
        date_from = _to_timestamp(self.date_from, "date_from")
        date_to = _to_timestamp(self.date_to, "date_to")
        object.__setattr__(self, "date_from", date_from)
        object.__setattr__(self, "date_to", date_to)
        if date_from is not None and date_to is not None and date_from > date_to:
            raise ValidationError(f"date_from {date_from.date()} is after date_to {date_to.date()}")

        if self.forward_months is not None:
            if int(self.forward_months) < 0:
                raise ValidationError(f"forward_months must be >= 0, got {self.forward_months}")
            object.__setattr__(self, "forward_months", int(self.forward_months))

        year = clean_text(self.year)
        if not _is_all(year) and not (len(year) == 4 and year.isdigit()):
            raise ValidationError(f"year must be a 4-digit year, got {self.year!r}")
        object.__setattr__(self, "year", year if not _is_all(year) else ALL)

    @property
    def market_code(self) -> str:
        return "" if _is_all(self.market) else normalize_market_value(self.market)

    @property
    def variety_code(self) -> str:
        return "" if _is_all(self.variety) else normalize_variety_code(self.variety)

    @property
    def distributor_text(self) -> str:
        return "" if _is_all(self.distributor) else _distributor_text(self.distributor)

    @property
    def is_forward(self) -> bool:
        return self.forward_months is not None


# ========================================
# 테이블 필터
# ========================================


STOCK_FILTER_COLUMNS = ("market_code", "location", "variety_code", "vintage", "period_year")
SHIPMENT_FILTER_COLUMNS = ("market_code", "customer", "variety_code", "vintage", "shipped_date", "arrival_date")


def _require_columns(data: pd.DataFrame, columns: tuple[str, ...], what: str) -> None:
    missing = [col for col in columns if col not in data.columns]
    if missing:
        raise FilterError(f"{what} is missing filter column(s): {', '.join(missing)}")


def _distributor_mask(values: pd.Series, wanted: str) -> pd.Series:
    cleaned = values.map(_distributor_text)
    return cleaned.map(lambda text: bool(text) and (text == wanted or wanted in text))


def filter_stock(table: StockTable, selection: FilterSelection) -> StockTable:
    """
    재고/판매 레코드에 필터를 적용합니다.

    날짜 범위는 기간이 있는 레코드에만 적용되며, 기간이 없는 스냅샷
    레코드는 항상 통과합니다.
    """
    data = table.data
    if data.empty:
        return table
    _require_columns(data, STOCK_FILTER_COLUMNS, "stock table")

    mask = pd.Series(True, index=data.index)
    if selection.market_code:
        mask &= normalize_market_series(data["market_code"]) == selection.market_code
    if selection.distributor_text:
        mask &= _distributor_mask(data["location"], selection.distributor_text)
    if selection.variety_code:
        mask &= data["variety_code"].str.upper() == selection.variety_code
    if selection.year != ALL:
        mask &= (data["vintage"] == selection.year) | (data["period_year"] == selection.year)
    if selection.date_from is not None or selection.date_to is not None:
        keys = table.period_keys()
        in_range = pd.Series(True, index=data.index)
        if selection.date_from is not None:
            in_range &= keys >= selection.date_from.strftime("%Y-%m")
        if selection.date_to is not None:
            in_range &= keys <= selection.date_to.strftime("%Y-%m")
        mask &= (keys == "") | in_range

    filtered = data[mask]
    logger.debug(f"filter_stock: {len(data)} -> {len(filtered)} records")
    return StockTable(filtered.reset_index(drop=True))


def filter_shipments(table: ShipmentTable, selection: FilterSelection) -> ShipmentTable:
    """선적 레코드에 시장/거래처/품종/연도 필터를 적용합니다."""

    data = table.data
    if data.empty:
        return table
    _require_columns(data, SHIPMENT_FILTER_COLUMNS, "shipment table")

    mask = pd.Series(True, index=data.index)
    if selection.market_code:
        mask &= normalize_market_series(data["market_code"]) == selection.market_code
    if selection.distributor_text:
        mask &= _distributor_mask(data["customer"], selection.distributor_text)
    if selection.variety_code:
        mask &= data["variety_code"].str.upper() == selection.variety_code
    if selection.year != ALL:
        year = int(selection.year)
        mask &= (
            (data["shipped_date"].dt.year == year)
            | (data["arrival_date"].dt.year == year)
            | (data["vintage"] == selection.year)
        )

    filtered = data[mask]
    logger.debug(f"filter_shipments: {len(data)} -> {len(filtered)} shipments")
    return ShipmentTable(filtered.reset_index(drop=True))


# ========================================
# 기간 목록
# ========================================


def month_range(start: pd.Timestamp, end: pd.Timestamp) -> list[str]:
    """start 가 속한 달부터 end 가 속한 달까지의 "YYYY-MM" 목록."""

    if start > end:
        return []
    return [str(p) for p in pd.period_range(start=start, end=end, freq="M").strftime("%Y-%m")]


def build_periods(
    selection: FilterSelection,
    today: Optional[pd.Timestamp] = None,
    stock: Optional[StockTable] = None,
    *,
    default_forward_months: int = CONFIG.projection.default_forward_months,
) -> list[str]:
    """
    프로젝션할 기간 목록을 계산합니다.

    - 전망 모드: 이번 달부터 forward_months 개월
    - 날짜 범위: date_from ~ date_to (한쪽이 비면 재고 데이터 기간으로 채움)
    - 범위 없음: 재고 데이터의 최소~최대 기간
    - 재고에 기간 정보도 없으면 이번 달부터 기본 전망 개월 수

    Examples:
        >>> build_periods(FilterSelection(forward_months=3), pd.Timestamp("2025-01-15"))
        ['2025-01', '2025-02', '2025-03']
    """
    today = (today or pd.Timestamp.today()).normalize()
    current = today.replace(day=1)

    if selection.is_forward:
        months = int(selection.forward_months or 0)
        return [str(p) for p in pd.period_range(start=current, periods=months, freq="M").strftime("%Y-%m")] if months else []

    keys = sorted(key for key in (stock.period_keys() if stock is not None else []) if key)
    data_start = pd.Timestamp(f"{keys[0]}-01") if keys else None
    data_end = pd.Timestamp(f"{keys[-1]}-01") if keys else None

    start = selection.date_from or data_start
    end = selection.date_to or data_end
    if start is None and end is None:
        return build_periods(
            FilterSelection(forward_months=default_forward_months), today, default_forward_months=default_forward_months
        )
    start = start or end
    end = end or start
    return month_range(start, end)


# ========================================
# 필터 옵션
# ========================================


@dataclass(frozen=True)
class FilterOptions:
    """필터 드롭다운 옵션."""

    markets: tuple[str, ...]
    distributors: tuple[str, ...]
    varieties: tuple[str, ...]
    years: tuple[str, ...]


def extract_filter_options(store: "CanonicalStore") -> FilterOptions:
    """스토어 전체에서 시장/유통사/품종/연도 옵션을 추출합니다."""

    stock = store.stock_table().data
    shipments = store.shipment_table().data

    markets = available_markets(list(stock["market_code"]) + list(shipments["market_code"]))

    distributors: set[str] = set()
    for value in list(stock["location"]) + list(shipments["customer"]):
        cleaned = clean_location(value)
        if cleaned and cleaned.casefold() != "unknown":
            distributors.add(cleaned)

    varieties = {code for code in list(stock["variety_code"]) + list(shipments["variety_code"]) if code}

    years = {year for year in list(stock["vintage"]) + list(stock["period_year"]) if len(year) == 4}
    for column in ("shipped_date", "arrival_date"):
        years.update(str(int(y)) for y in shipments[column].dropna().dt.year.unique())
    years.update(year for year in shipments["vintage"] if len(year) == 4)

    return FilterOptions(
        markets=tuple(markets),
        distributors=tuple(sorted(distributors, key=str.casefold)),
        varieties=tuple(sorted(varieties)),
        years=tuple(sorted(years, reverse=True)),
    )
