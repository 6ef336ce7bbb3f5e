"""KPI 카드 값 계산."""

from __future__ import annotations

from typing import Optional, Sequence

from ..domain.models import Alert, KpiSummary, ProjectionPoint
from .alerts import CRITICAL


def _count(alerts: Sequence[Alert], period: Optional[str], *, critical_only: bool) -> int:
    if period is None:
        return 0
    return sum(
        1
        for alert in alerts
        if alert.period == period and (not critical_only or alert.severity == CRITICAL)
    )


def summarize_kpis(points: Sequence[ProjectionPoint], alerts: Sequence[Alert]) -> KpiSummary:
    """
    마지막 두 프로젝션 기간(now, prev)으로 KPI 를 계산합니다.

    기간이 하나뿐이면 prev 값은 0 입니다. accuracy 가 None 이면 0 으로 봅니다.
    """
    if not points:
        return KpiSummary()

    now = points[-1]
    prev = points[-2] if len(points) > 1 else None
    return KpiSummary(
        avg_float_now=float(now.stock_float),
        avg_float_prev=float(prev.stock_float) if prev else 0.0,
        forecast_acc_now=float(now.accuracy or 0),
        forecast_acc_prev=float(prev.accuracy or 0) if prev else 0.0,
        critical_now=_count(alerts, now.period, critical_only=True),
        critical_prev=_count(alerts, prev.period if prev else None, critical_only=True),
        at_risk_now=_count(alerts, now.period, critical_only=False),
        at_risk_prev=_count(alerts, prev.period if prev else None, critical_only=False),
    )
