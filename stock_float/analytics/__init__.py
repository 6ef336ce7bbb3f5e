"""Accuracy scoring, alerts, KPI and shipping statistics."""

from .accuracy import accuracy_score, score_periods
from .alerts import generate_alerts, months_until_stockout
from .kpi import summarize_kpis
from .shipping import ShippingTimeReport, ShippingTimeStats, shipping_time_stats

__all__ = [
    "ShippingTimeReport",
    "ShippingTimeStats",
    "accuracy_score",
    "generate_alerts",
    "months_until_stockout",
    "score_periods",
    "shipping_time_stats",
    "summarize_kpis",
]
