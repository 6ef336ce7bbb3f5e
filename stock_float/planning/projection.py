"""
기간별 stock float 프로젝션

기준 테이블(유통사·품종별 재고)에 기간별 운송 버킷을 결합하고 예측 판매량을
빼서 기간마다 집계 포인트와 품목별 breakdown 을 만듭니다.

    stock_float = max(0, stock_on_hand + in_transit - predicted_sales)
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

import pandas as pd

from ..common.parsing import Period
from ..domain.models import DistributorVarietyProjection, ProjectionPoint
from ..forecast.mean import SalesForecast, distribute_predicted_sales
from .aggregation import BASE_COLUMNS
from .transit import TransitBuckets

logger = logging.getLogger(__name__)


def period_items(
    base: pd.DataFrame,
    bucket: Mapping[str, float],
    transit_details: Optional[Mapping[str, Mapping[str, str]]] = None,
) -> pd.DataFrame:
    """
    한 기간의 품목 테이블.

    in_transit 은 그 기간에 도착하는 수량만 사용하며, 기준 테이블에 없는
    운송 전용 품목은 재고 0 인 항목으로 추가합니다.
    """
    items = base.loc[:, list(BASE_COLUMNS)].copy()
    items["in_transit"] = items["key"].map(lambda key: float(bucket.get(key, 0.0))).astype(float)

    known = set(items["key"])
    extra = []
    for key, cases in bucket.items():
        if key in known:
            continue
        details = dict((transit_details or {}).get(key, {}))
        distributor, _, variety = key.rpartition("_")
        extra.append(
            {
                "key": key,
                "distributor": details.get("distributor", distributor),
                "variety_code": details.get("variety_code", variety),
                "market_code": details.get("market_code", ""),
                "stock_on_hand": 0.0,
                "in_transit": float(cases),
            }
        )
    if extra:
        items = pd.concat([items, pd.DataFrame(extra)], ignore_index=True) if not items.empty else pd.DataFrame(extra)
    return items.reset_index(drop=True)


def build_projection(
    base: pd.DataFrame,
    buckets: TransitBuckets,
    forecast: SalesForecast,
    periods: Sequence[str],
    *,
    today: pd.Timestamp,
    market_code: str = "",
    transit_details: Optional[Mapping[str, Mapping[str, str]]] = None,
) -> list[ProjectionPoint]:
    """
    요청된 기간마다 프로젝션 포인트를 만듭니다.

    Args:
        base: merge_stock_float 결과 (key, distributor, variety_code, market_code, stock_on_hand, in_transit)
        buckets: bucket_transit 결과
        forecast: compute_forecast 결과
        periods: "YYYY-MM" 기간 목록
        today: 과거/미래 기간 구분 기준일
        market_code: 시장 필터 (집계 예측 판매량 선택용)

    Returns:
        periods 순서의 ProjectionPoint 목록. accuracy 는 채우지 않습니다.
    """
    current_key = Period.from_timestamp(today).key
    predicted_total = forecast.predicted_total(market_code)
    points: list[ProjectionPoint] = []

    for period in periods:
        items = period_items(base, buckets.get(period, {}), transit_details)
        shares = distribute_predicted_sales(items, forecast)

        breakdown: list[DistributorVarietyProjection] = []
        for idx, item in items.iterrows():
            predicted = float(shares.get(idx, 0.0))
            raw = float(item["stock_on_hand"]) + float(item["in_transit"]) - predicted
            breakdown.append(
                DistributorVarietyProjection(
                    distributor=str(item["distributor"]),
                    variety_code=str(item["variety_code"]),
                    market_code=str(item["market_code"]),
                    stock_on_hand=float(item["stock_on_hand"]),
                    in_transit=float(item["in_transit"]),
                    predicted_sales=predicted,
                    stock_float=max(0.0, raw),
                    raw_stock_float=raw,
                )
            )

        stock_on_hand = float(items["stock_on_hand"].sum()) if not items.empty else 0.0
        in_transit = float(items["in_transit"].sum()) if not items.empty else 0.0
        raw_total = stock_on_hand + in_transit - predicted_total
        is_forward = period >= current_key
        points.append(
            ProjectionPoint(
                period=period,
                stock_on_hand=stock_on_hand,
                in_transit=in_transit,
                predicted_sales=predicted_total,
                stock_float=max(0.0, raw_total),
                raw_stock_float=raw_total,
                is_forward=is_forward,
                actual_sales=None if is_forward else forecast.actuals.get(period),
                breakdown=tuple(breakdown),
            )
        )

    logger.debug(f"build_projection: {len(points)} periods, predicted_total={predicted_total:.1f}")
    return points
