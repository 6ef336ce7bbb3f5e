"""
선적 소요일 통계

완료된 선적의 (도착일 - 출고일) 일수를 전체/거래처별/운송사별로
평균·최소·최대로 요약합니다.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

import pandas as pd

from ..domain.models import STATUS_COMPLETE, ShipmentTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShippingTimeStats:
    """소요일 요약 (일 단위)."""

    count: int = 0
    average: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0


@dataclass(frozen=True)
class ShippingTimeReport:
    overall: ShippingTimeStats = field(default_factory=ShippingTimeStats)
    by_customer: Mapping[str, ShippingTimeStats] = field(default_factory=dict)
    by_forwarder: Mapping[str, ShippingTimeStats] = field(default_factory=dict)


def _stats(days: pd.Series) -> ShippingTimeStats:
    if days.empty:
        return ShippingTimeStats()
    return ShippingTimeStats(
        count=int(days.count()),
        average=float(days.mean()),
        minimum=float(days.min()),
        maximum=float(days.max()),
    )


def shipping_days(shipments: ShipmentTable) -> pd.DataFrame:
    """완료 선적별 소요일. 날짜가 없거나 도착이 출고보다 빠른 행은 제외합니다."""

    data = shipments.data
    if data.empty:
        return pd.DataFrame(columns=["customer", "freight_forwarder", "days"])
    done = data[(data["status"] == STATUS_COMPLETE) & data["shipped_date"].notna() & data["arrival_date"].notna()]
    days = (done["arrival_date"] - done["shipped_date"]).dt.days
    out = pd.DataFrame(
        {
            "customer": done["customer"],
            "freight_forwarder": done["freight_forwarder"],
            "days": days.astype(float),
        }
    )
    return out[out["days"] >= 0].reset_index(drop=True)


def shipping_time_stats(shipments: ShipmentTable) -> ShippingTimeReport:
    days = shipping_days(shipments)
    if days.empty:
        return ShippingTimeReport()

    by_customer = {
        str(name): _stats(group["days"]) for name, group in days.groupby("customer", sort=True) if name
    }
    by_forwarder = {
        str(name): _stats(group["days"]) for name, group in days.groupby("freight_forwarder", sort=True) if name
    }
    logger.debug(f"shipping_time_stats: {len(days)} completed shipments")
    return ShippingTimeReport(overall=_stats(days["days"]), by_customer=by_customer, by_forwarder=by_forwarder)
