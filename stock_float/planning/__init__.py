"""Aggregation, transit scheduling and period projection."""

from .aggregation import (
    aggregation_key,
    clean_location,
    group_active_shipments,
    group_stock,
    merge_stock_float,
)
from .projection import build_projection
from .transit import bucket_transit, lead_time_months, resolve_arrival_period

__all__ = [
    "aggregation_key",
    "bucket_transit",
    "build_projection",
    "clean_location",
    "group_active_shipments",
    "group_stock",
    "lead_time_months",
    "merge_stock_float",
    "resolve_arrival_period",
]
