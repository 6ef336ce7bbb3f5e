"""
저재고 알림 생성

세 종류의 알림을 만듭니다.

- item: 품목별 stock float 가 임계값 미만
- aggregate: 기간 전체 stock float 가 임계값 미만 (기간당 최대 1건)
- stockout: 재고 소진까지 남은 개월 수가 설정값 이하
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from ..core.config import CONFIG, ProjectionConfig
from ..domain.models import Alert, DistributorVarietyProjection, ProjectionPoint
from ..domain.vocabulary import variety_display_name

logger = logging.getLogger(__name__)

CRITICAL = "critical"
HIGH = "high"
MEDIUM = "medium"
WARNING = "warning"
INFO = "info"


def item_severity(stock_float: float, raw_stock_float: float, threshold: float) -> str:
    if raw_stock_float < 0:
        return CRITICAL
    if stock_float < threshold / 2:
        return WARNING
    return INFO


def _item_alerts(point: ProjectionPoint, threshold: float) -> list[Alert]:
    alerts: list[Alert] = []
    for item in point.breakdown:
        if item.stock_float >= threshold:
            continue
        severity = item_severity(item.stock_float, item.raw_stock_float, threshold)
        variety = variety_display_name(item.variety_code) or item.variety_code
        alerts.append(
            Alert(
                id=f"alert_{item.distributor}_{item.variety_code}_{point.period}",
                distributor=item.distributor,
                variety_or_code=item.variety_code,
                period=point.period,
                stock_float=item.stock_float,
                severity=severity,
                description=(
                    f"{variety} at {item.distributor}: stock float {item.stock_float:.0f} "
                    f"below {threshold:.0f} in {point.period}"
                ),
            )
        )
    return alerts


def _aggregate_alert(point: ProjectionPoint, threshold: float) -> Optional[Alert]:
    if point.stock_float >= threshold:
        return None
    return Alert(
        id=f"alert_aggregate_{point.period}",
        distributor="all",
        variety_or_code="all",
        period=point.period,
        stock_float=point.stock_float,
        severity=CRITICAL if point.raw_stock_float < 0 else WARNING,
        description=f"Total stock float {point.stock_float:.0f} below {threshold:.0f} in {point.period}",
        scope="aggregate",
    )


def months_until_stockout(history: Sequence[DistributorVarietyProjection]) -> Optional[int]:
    """
    기간 순서의 품목 프로젝션으로 재고 소진까지 남은 개월 수를 계산합니다.

    첫 기간은 재고 + 운송중으로 시작하고, 이후 기간마다 직전 기간 예측
    판매량을 빼고 해당 기간 운송중 수량을 더합니다. 기간 안에 소진되지
    않으면 평균 예측 판매량으로 추정하며, 예측 판매가 없으면 None 입니다.
    """
    if not history:
        return None

    remaining = 0.0
    for index, item in enumerate(history):
        if index == 0:
            remaining = item.stock_on_hand + item.in_transit
        else:
            remaining = max(0.0, remaining - history[index - 1].predicted_sales) + item.in_transit
        if remaining <= 0:
            return index

    avg_sales = sum(item.predicted_sales for item in history) / len(history)
    if avg_sales <= 0:
        return None
    first = history[0]
    return int(math.ceil((first.stock_on_hand + first.in_transit) / avg_sales))


def stockout_severity(months: int) -> str:
    if months <= 1:
        return CRITICAL
    if months <= 2:
        return HIGH
    return MEDIUM


def _stockout_alerts(points: Sequence[ProjectionPoint], max_months: int) -> list[Alert]:
    by_key: dict[str, list[DistributorVarietyProjection]] = {}
    first_period: dict[str, str] = {}
    for point in sorted(points, key=lambda p: p.period):
        for item in point.breakdown:
            by_key.setdefault(item.key, []).append(item)
            first_period.setdefault(item.key, point.period)

    alerts: list[Alert] = []
    for key, history in by_key.items():
        months = months_until_stockout(history)
        if months is None or months > max_months:
            continue
        first = history[0]
        plural = "" if months == 1 else "s"
        alerts.append(
            Alert(
                id=f"alert_stockout_{first.distributor}_{first.variety_code}",
                distributor=first.distributor,
                variety_or_code=first.variety_code,
                period=first_period[key],
                stock_float=first.stock_float,
                severity=stockout_severity(months),
                description=(
                    f"{first.variety_code} at {first.distributor} projected to run out in {months} month{plural}. "
                    f"Current stock: {first.stock_on_hand:.0f}, In transit: {first.in_transit:.0f}"
                ),
                scope="stockout",
            )
        )
    return alerts


def generate_alerts(
    points: Sequence[ProjectionPoint],
    config: ProjectionConfig = CONFIG.projection,
) -> list[Alert]:
    """
    프로젝션 포인트로부터 알림 목록을 만듭니다.

    Args:
        points: 기간 순서의 ProjectionPoint 목록
        config: 임계값 및 재고 소진 알림 개월 수

    Returns:
        item 알림(기간 순) -> aggregate 알림 -> stockout 알림 순서의 목록
    """
    threshold = float(config.alert_threshold)
    alerts: list[Alert] = []
    for point in points:
        alerts.extend(_item_alerts(point, threshold))
    for point in points:
        aggregate = _aggregate_alert(point, threshold)
        if aggregate is not None:
            alerts.append(aggregate)
    alerts.extend(_stockout_alerts(points, config.stockout_alert_months))

    logger.debug(f"generate_alerts: {len(alerts)} alerts for {len(points)} periods")
    return alerts
