"""
도메인 모델: stock float 엔진의 핵심 데이터 구조

캐노니컬 레코드는 고정 스키마의 데이터프레임으로, 프로젝션 결과는
불변(frozen) 데이터클래스로 표현합니다. 어떤 단계도 입력을 변경하지 않고
항상 새로운 구조를 만들어 반환합니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

import pandas as pd

from ..common.parsing import Period

# ============================================================
# 캐노니컬 스키마
# ============================================================

# 재고/판매 레코드 컬럼 (source_sheet, raw_row 는 출처 추적용이며 집계 키에 사용하지 않음)
CANONICAL_COLUMNS: tuple[str, ...] = (
    "market_code",
    "variety_code",
    "brand_code",
    "brand_name",
    "vintage",
    "location",
    "product_name",
    "quantity",
    "period_month",
    "period_year",
    "source_sheet",
    "raw_row",
)

# 수출(선적) 레코드 컬럼
SHIPMENT_COLUMNS: tuple[str, ...] = (
    "market_code",
    "variety_code",
    "brand_code",
    "vintage",
    "product_name",
    "customer",
    "state",
    "cases",
    "status",
    "status_text",
    "shipped_date",
    "arrival_date",
    "freight_forwarder",
    "lead_time_months",
    "transit_days",
    "source_sheet",
    "raw_row",
)

STATUS_ACTIVE = "active"
STATUS_COMPLETE = "complete"

_TEXT_COLUMNS = (
    "market_code",
    "variety_code",
    "brand_code",
    "brand_name",
    "vintage",
    "location",
    "product_name",
    "period_month",
    "period_year",
    "source_sheet",
    "customer",
    "state",
    "status",
    "status_text",
    "freight_forwarder",
)


def _conform(frame: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """Return a copy of *frame* restricted to *columns*, adding any that are missing."""

    out = frame.copy()
    for column in columns:
        if column not in out.columns:
            out[column] = pd.NA if column not in _TEXT_COLUMNS else ""
    out = out.loc[:, list(columns)]
    for column in columns:
        if column in _TEXT_COLUMNS:
            out[column] = out[column].fillna("").astype(str)
    return out.reset_index(drop=True)


def _typed_empty(columns: Sequence[str]) -> pd.DataFrame:
    dtypes = {
        "quantity": "float64",
        "cases": "float64",
        "lead_time_months": "float64",
        "transit_days": "float64",
        "shipped_date": "datetime64[ns]",
        "arrival_date": "datetime64[ns]",
    }
    return pd.DataFrame(
        {column: pd.Series(dtype=dtypes.get(column, object)) for column in columns}
    )


def empty_stock_frame() -> pd.DataFrame:
    return _typed_empty(CANONICAL_COLUMNS)


def empty_shipment_frame() -> pd.DataFrame:
    return _typed_empty(SHIPMENT_COLUMNS)


@dataclass(frozen=True)
class StockTable:
    """
    재고/판매 캐노니컬 레코드 테이블.

    Attributes:
        data: CANONICAL_COLUMNS 스키마를 따르는 데이터프레임.
            quantity 는 항상 0 이상의 12팩 케이스 환산 값입니다.
    """

    data: pd.DataFrame

    @classmethod
    def from_dataframe(cls, frame: Optional[pd.DataFrame]) -> "StockTable":
        if frame is None or frame.empty:
            return cls(empty_stock_frame())
        data = _conform(frame, CANONICAL_COLUMNS)
        data["quantity"] = pd.to_numeric(data["quantity"], errors="coerce").fillna(0.0).clip(lower=0.0)
        return cls(data)

    @property
    def empty(self) -> bool:
        return self.data.empty

    def period_keys(self) -> pd.Series:
        """레코드별 ``YYYY-MM`` 기간 키 (기간이 없는 레코드는 빈 문자열)."""

        if self.data.empty:
            return pd.Series([], dtype=str)

        def _key(row: pd.Series) -> str:
            if not row["period_month"] or not row["period_year"]:
                return ""
            return Period(year=row["period_year"], month=row["period_month"]).key

        return self.data.apply(_key, axis=1).astype(str)


@dataclass(frozen=True)
class ShipmentTable:
    """
    수출 선적 캐노니컬 레코드 테이블.

    Attributes:
        data: SHIPMENT_COLUMNS 스키마를 따르는 데이터프레임.
            status 는 "active"(선적 대기/운송중) 또는 "complete" 입니다.
    """

    data: pd.DataFrame

    @classmethod
    def from_dataframe(cls, frame: Optional[pd.DataFrame]) -> "ShipmentTable":
        if frame is None or frame.empty:
            return cls(empty_shipment_frame())
        data = _conform(frame, SHIPMENT_COLUMNS)
        data["cases"] = pd.to_numeric(data["cases"], errors="coerce").fillna(0.0).clip(lower=0.0)
        for column in ("shipped_date", "arrival_date"):
            data[column] = pd.to_datetime(data[column], errors="coerce")
        data["lead_time_months"] = pd.to_numeric(data["lead_time_months"], errors="coerce")
        data["transit_days"] = pd.to_numeric(data["transit_days"], errors="coerce")
        return cls(data)

    @property
    def empty(self) -> bool:
        return self.data.empty

    def active(self) -> pd.DataFrame:
        if self.data.empty:
            return self.data
        return self.data[self.data["status"] == STATUS_ACTIVE]


# ============================================================
# 프로젝션 결과
# ============================================================

@dataclass(frozen=True)
class DistributorVarietyProjection:
    """유통사·품종 단위 기간별 프로젝션 항목."""

    distributor: str
    variety_code: str
    market_code: str
    stock_on_hand: float
    in_transit: float
    predicted_sales: float
    stock_float: float
    raw_stock_float: float

    @property
    def key(self) -> str:
        return f"{self.distributor.lower()}_{self.variety_code.upper()}"


@dataclass(frozen=True)
class ProjectionPoint:
    """
    한 기간의 집계 프로젝션.

    stock_float = max(0, stock_on_hand + in_transit - predicted_sales) 이며,
    raw_stock_float 는 0 으로 자르기 전 값입니다(알림 심각도 판단용).
    accuracy 는 실적이 있는 과거 기간에만 채워집니다.
    """

    period: str
    stock_on_hand: float
    in_transit: float
    predicted_sales: float
    stock_float: float
    raw_stock_float: float
    is_forward: bool = False
    actual_sales: Optional[float] = None
    accuracy: Optional[int] = None
    breakdown: tuple[DistributorVarietyProjection, ...] = ()


@dataclass(frozen=True)
class Alert:
    """저재고 알림. scope 는 "item", "aggregate", "stockout" 중 하나입니다."""

    id: str
    distributor: str
    variety_or_code: str
    period: str
    stock_float: float
    severity: str
    description: str
    scope: str = "item"


@dataclass(frozen=True)
class KpiSummary:
    """최근 두 프로젝션 기간으로부터 계산한 KPI 카드 값."""

    avg_float_now: float = 0.0
    avg_float_prev: float = 0.0
    forecast_acc_now: float = 0.0
    forecast_acc_prev: float = 0.0
    critical_now: int = 0
    critical_prev: int = 0
    at_risk_now: int = 0
    at_risk_prev: int = 0


@dataclass(frozen=True)
class ProjectionResult:
    """``project()`` 의 전체 출력."""

    periods: tuple[str, ...]
    points: tuple[ProjectionPoint, ...] = ()
    alerts: tuple[Alert, ...] = ()
    kpis: KpiSummary = field(default_factory=KpiSummary)
    predicted_sales: float = 0.0
    market_averages: tuple[tuple[str, float], ...] = ()

    @classmethod
    def empty(cls, periods: Sequence[str] = ()) -> "ProjectionResult":
        return cls(periods=tuple(periods))

    @property
    def has_data(self) -> bool:
        return bool(self.points)
