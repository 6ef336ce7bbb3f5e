"""End-to-end stock float projection.

``project`` runs filter -> aggregate -> schedule transit -> forecast ->
project -> score -> alert as one pure, deterministic pass over the
canonical store. Nothing is cached between runs.
"""

from __future__ import annotations

import logging
from typing import Optional

import pandas as pd

from .analytics.accuracy import score_periods
from .analytics.alerts import generate_alerts
from .analytics.kpi import summarize_kpis
from .common.performance import measure_time
from .core.config import CONFIG, EngineConfig
from .domain.filters import FilterSelection, build_periods, filter_shipments, filter_stock
from .domain.models import ProjectionResult
from .forecast.mean import compute_forecast
from .ingestion.store import EXPORTS, STOCK_ON_HAND, CanonicalStore
from .planning.aggregation import group_active_shipments, group_stock, merge_stock_float
from .planning.projection import build_projection
from .planning.transit import bucket_transit, transit_item_details

logger = logging.getLogger(__name__)


@measure_time
def project(
    store: CanonicalStore,
    filters: Optional[FilterSelection] = None,
    *,
    today: Optional[pd.Timestamp] = None,
    config: EngineConfig = CONFIG,
) -> ProjectionResult:
    """Build projection points, alerts and KPIs for the active filter selection.

    When the stock-on-hand or exports category holds no records the result is
    empty (no points, no alerts, zero KPIs) rather than a partial projection.
    """

    selection = filters or FilterSelection()
    today = (today or pd.Timestamp.today()).normalize()

    stock = filter_stock(store.stock_table(), selection)
    periods = build_periods(
        selection,
        today,
        stock,
        default_forward_months=config.projection.default_forward_months,
    )

    if not store.has_records(STOCK_ON_HAND) or not store.has_records(EXPORTS):
        logger.debug(
            f"No-data: stock={store.record_count(STOCK_ON_HAND)} exports={store.record_count(EXPORTS)}"
        )
        return ProjectionResult.empty(periods)

    shipments = filter_shipments(store.shipment_table(), selection)
    sales = filter_stock(store.sales_table(), selection)
    history = sales if not sales.empty else stock
    logger.debug(
        f"Filtered: {len(stock.data)} stock, {len(shipments.data)} shipments, "
        f"{len(history.data)} history rows ({'sales' if not sales.empty else 'stock'})"
    )

    base = merge_stock_float(group_stock(stock), group_active_shipments(shipments))
    buckets = bucket_transit(shipments, today, lead_times=config.lead_time)
    forecast = compute_forecast(history)

    points = build_projection(
        base,
        buckets,
        forecast,
        periods,
        today=today,
        market_code=selection.market_code,
        transit_details=transit_item_details(shipments),
    )
    points = score_periods(points)
    alerts = generate_alerts(points, config.projection)

    return ProjectionResult(
        periods=tuple(periods),
        points=tuple(points),
        alerts=tuple(alerts),
        kpis=summarize_kpis(points, alerts),
        predicted_sales=forecast.predicted_total(selection.market_code),
        market_averages=tuple(sorted(forecast.market_averages.items())),
    )
