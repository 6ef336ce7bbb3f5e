"""공통 유틸리티 (값 파싱, 성능 측정)."""

from .parsing import Period, parse_date, parse_period, parse_quantity
from .performance import PerformanceContext, measure_time, measure_time_context

__all__ = [
    "Period",
    "PerformanceContext",
    "measure_time",
    "measure_time_context",
    "parse_date",
    "parse_period",
    "parse_quantity",
]
