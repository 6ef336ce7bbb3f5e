"""
운송중 수량 월별 배분

활성 선적마다 예상 도착 월을 계산해, "YYYY-MM" -> {집계 키: 케이스}
버킷으로 모읍니다.

도착 월 결정 순서:
1. 실제 도착일
2. 출고일 + 운송 일수(transit_days)
3. 출고일 + 시장별 리드타임(개월)
4. 날짜가 전혀 없는 활성 선적은 이번 달
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import pandas as pd

from ..common.parsing import Period, add_months_safe, is_missing
from ..core.config import CONFIG, LeadTimeConfig
from ..domain.models import STATUS_ACTIVE, ShipmentTable
from .aggregation import shipment_items

logger = logging.getLogger(__name__)

TransitBuckets = dict[str, dict[str, float]]


def lead_time_months(market_code: Any, lead_times: LeadTimeConfig = CONFIG.lead_time) -> int:
    return lead_times.months_for(str(market_code or ""))


def _timestamp(value: Any) -> Optional[pd.Timestamp]:
    if is_missing(value):
        return None
    ts = pd.Timestamp(value)
    return None if pd.isna(ts) else ts


def resolve_arrival_period(
    row: Mapping[str, Any],
    today: pd.Timestamp,
    *,
    lead_times: LeadTimeConfig = CONFIG.lead_time,
) -> Optional[str]:
    """
    선적 한 건의 예상 도착 기간 키를 반환합니다.

    Examples:
        >>> resolve_arrival_period(
        ...     {"market_code": "usa", "shipped_date": pd.Timestamp("2025-01-05"), "status": "active"},
        ...     pd.Timestamp("2025-01-20"),
        ... )
        '2025-03'
    """
    arrival = _timestamp(row.get("arrival_date"))
    if arrival is not None:
        return Period.from_timestamp(arrival).key

    shipped = _timestamp(row.get("shipped_date"))
    if shipped is not None:
        transit_days = row.get("transit_days")
        if not is_missing(transit_days) and float(transit_days) > 0:
            try:
                return Period.from_timestamp(shipped + pd.Timedelta(days=float(transit_days))).key
            except (OverflowError, pd.errors.OutOfBoundsDatetime, pd.errors.OutOfBoundsTimedelta):
                logger.debug(f"transit_days {transit_days!r} out of range, using lead time")
        months = row.get("lead_time_months")
        if is_missing(months):
            months = lead_time_months(row.get("market_code"), lead_times)
        return Period.from_timestamp(add_months_safe(shipped, int(months))).key

    if row.get("status") == STATUS_ACTIVE:
        return Period.from_timestamp(today).key
    return None


def bucket_transit(
    shipments: ShipmentTable,
    today: Optional[pd.Timestamp] = None,
    *,
    lead_times: LeadTimeConfig = CONFIG.lead_time,
) -> TransitBuckets:
    """활성 선적 케이스를 예상 도착 월별, 집계 키별로 합산합니다."""

    today = (today or pd.Timestamp.today()).normalize()
    active = shipments.active()
    if active.empty:
        return {}

    buckets: TransitBuckets = {}
    skipped = 0
    for row in shipment_items(active).to_dict(orient="records"):
        period = resolve_arrival_period(row, today, lead_times=lead_times)
        if period is None:
            skipped += 1
            continue
        bucket = buckets.setdefault(period, {})
        bucket[row["key"]] = bucket.get(row["key"], 0.0) + float(row["cases"])

    logger.debug(f"bucket_transit: {len(active)} active shipments -> {len(buckets)} periods (skipped {skipped})")
    return buckets


def transit_item_details(shipments: ShipmentTable) -> dict[str, dict[str, str]]:
    """집계 키 -> distributor/variety_code/market_code (운송 전용 항목 생성용)."""

    active = shipments.active()
    if active.empty:
        return {}
    details: dict[str, dict[str, str]] = {}
    for row in shipment_items(active).to_dict(orient="records"):
        details.setdefault(
            row["key"],
            {
                "distributor": row["distributor"],
                "variety_code": row["variety_code"],
                "market_code": row["market_code"],
            },
        )
    return details
