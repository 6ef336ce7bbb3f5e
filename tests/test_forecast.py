"""
평균 판매 예측 및 기간별 프로젝션 테스트
"""
from __future__ import annotations

import pandas as pd
import pytest

from conftest import make_stock, stock_row
from stock_float.domain.filters import FilterSelection, build_periods
from stock_float.forecast.mean import SalesForecast, compute_forecast, distribute_predicted_sales
from stock_float.planning.projection import build_projection, period_items


def _history(*rows):
    return make_stock([stock_row(**row) for row in rows])


def _base():
    return pd.DataFrame(
        [
            {"key": "foodstuffs_PIN", "distributor": "foodstuffs", "variety_code": "PIN", "market_code": "nzl", "stock_on_hand": 200.0, "in_transit": 0.0},
            {"key": "foodstuffs_SAB", "distributor": "foodstuffs", "variety_code": "SAB", "market_code": "nzl", "stock_on_hand": 800.0, "in_transit": 120.0},
        ]
    )


# ============================================================
# 평균 예측
# ============================================================

def test_compute_forecast_flat_average():
    history = _history(
        {"quantity": 2000.0, "period_month": "Oct", "period_year": "2024"},
        {"quantity": 3000.0, "period_month": "Nov", "period_year": "2024"},
        {"quantity": 4000.0, "period_month": "Dec", "period_year": "2024"},
    )

    forecast = compute_forecast(history)

    assert forecast.overall_average == 3000.0
    assert forecast.market_averages == {"nzl": 3000.0}
    assert forecast.actuals == {"2024-10": 2000.0, "2024-11": 3000.0, "2024-12": 4000.0}


def test_compute_forecast_per_market_divides_by_distinct_periods():
    history = _history(
        {"market_code": "nzl", "quantity": 100.0, "period_month": "Jan", "period_year": "2025"},
        {"market_code": "nzl", "quantity": 300.0, "period_month": "Feb", "period_year": "2025"},
        {"market_code": "usa", "quantity": 250.0, "period_month": "Jan", "period_year": "2025"},
        {"market_code": "usa", "quantity": 350.0, "period_month": "Jan", "period_year": "2025"},
        {"market_code": "usa", "quantity": 999.0},
    )

    forecast = compute_forecast(history)

    assert forecast.market_averages == {"nzl": 200.0, "usa": 600.0}
    assert forecast.overall_average == 500.0
    assert forecast.average_for("jap") == 500.0
    assert forecast.predicted_total("usa") == 600.0
    assert forecast.predicted_total() == 500.0


def test_compute_forecast_window_and_empty_history():
    history = _history(
        {"quantity": 100.0, "period_month": "Jan", "period_year": "2025"},
        {"quantity": 900.0, "period_month": "Feb", "period_year": "2025"},
    )

    assert compute_forecast(history, periods_window=["2025-02"]).overall_average == 900.0
    assert compute_forecast(make_stock([])) == SalesForecast()
    assert compute_forecast(_history({"quantity": 5.0})).overall_average == 0.0


def test_distribute_predicted_sales_by_market_then_overall():
    items = pd.DataFrame(
        [
            {"key": "a_SAB", "market_code": "nzl", "stock_on_hand": 300.0, "in_transit": 0.0},
            {"key": "b_SAB", "market_code": "nzl", "stock_on_hand": 50.0, "in_transit": 50.0},
            {"key": "c_SAB", "market_code": "jap", "stock_on_hand": 100.0, "in_transit": 0.0},
        ]
    )
    forecast = SalesForecast(market_averages={"nzl": 200.0}, overall_average=500.0)

    shares = distribute_predicted_sales(items, forecast)

    assert shares.tolist() == pytest.approx([150.0, 50.0, 100.0])


def test_distribute_predicted_sales_even_split_without_weights():
    items = pd.DataFrame(
        [
            {"key": "a_SAB", "market_code": "", "stock_on_hand": 0.0, "in_transit": 0.0},
            {"key": "b_SAB", "market_code": "", "stock_on_hand": 0.0, "in_transit": 0.0},
        ]
    )

    shares = distribute_predicted_sales(items, SalesForecast(overall_average=90.0))

    assert shares.tolist() == [45.0, 45.0]


# ============================================================
# 기간별 프로젝션
# ============================================================

def test_same_prediction_for_every_forward_period(today):
    forecast = compute_forecast(
        _history(
            {"quantity": 2000.0, "period_month": "Oct", "period_year": "2024"},
            {"quantity": 3000.0, "period_month": "Nov", "period_year": "2024"},
            {"quantity": 4000.0, "period_month": "Dec", "period_year": "2024"},
        )
    )
    periods = build_periods(FilterSelection(forward_months=3), today)

    points = build_projection(_base(), {}, forecast, periods, today=today)

    assert [p.period for p in points] == ["2025-01", "2025-02", "2025-03"]
    assert [p.predicted_sales for p in points] == [3000.0, 3000.0, 3000.0]
    assert all(p.is_forward and p.actual_sales is None for p in points)
    assert all(p.stock_float == 0.0 and p.raw_stock_float == -2000.0 for p in points)


def test_in_transit_counts_only_in_arrival_period(today):
    forecast = SalesForecast(market_averages={"nzl": 600.0}, overall_average=600.0)
    buckets = {"2025-03": {"foodstuffs_SAB": 120.0}}

    points = build_projection(_base(), buckets, forecast, ["2025-01", "2025-02", "2025-03"], today=today)

    assert [p.in_transit for p in points] == [0.0, 0.0, 120.0]
    assert [p.stock_float for p in points] == [400.0, 400.0, 520.0]
    first = {item.key: item for item in points[0].breakdown}
    assert first["foodstuffs_SAB"].predicted_sales == pytest.approx(480.0)
    assert first["foodstuffs_SAB"].stock_float == pytest.approx(320.0)
    assert first["foodstuffs_PIN"].stock_float == pytest.approx(80.0)
    assert sum(item.predicted_sales for item in points[2].breakdown) == pytest.approx(600.0)


def test_transit_only_item_appears_in_arrival_period(today):
    buckets = {"2025-02": {"dreyfus_PIN": 40.0}}
    details = {"dreyfus_PIN": {"distributor": "dreyfus", "variety_code": "PIN", "market_code": "usa"}}

    points = build_projection(
        _base(), buckets, SalesForecast(), ["2025-01", "2025-02"], today=today, transit_details=details
    )

    assert "dreyfus_PIN" not in {item.key for item in points[0].breakdown}
    extra = {item.key: item for item in points[1].breakdown}["dreyfus_PIN"]
    assert extra.stock_on_hand == 0.0
    assert extra.in_transit == 40.0
    assert extra.market_code == "usa"


def test_period_items_on_empty_base():
    empty = pd.DataFrame(columns=["key", "distributor", "variety_code", "market_code", "stock_on_hand", "in_transit"])

    items = period_items(empty, {"dreyfus_PIN": 5.0})

    assert items.loc[0, "distributor"] == "dreyfus"
    assert items.loc[0, "variety_code"] == "PIN"


def test_past_periods_carry_actuals(today):
    forecast = SalesForecast(
        market_averages={"nzl": 3000.0},
        overall_average=3000.0,
        actuals={"2024-11": 3000.0, "2024-12": 4000.0},
    )

    points = build_projection(_base(), {}, forecast, ["2024-11", "2024-12", "2025-01"], today=today)

    assert [p.is_forward for p in points] == [False, False, True]
    assert [p.actual_sales for p in points] == [3000.0, 4000.0, None]


def test_market_filter_selects_market_average(today):
    forecast = SalesForecast(market_averages={"nzl": 100.0, "usa": 700.0}, overall_average=400.0)

    points = build_projection(_base(), {}, forecast, ["2025-01"], today=today, market_code="usa")

    assert points[0].predicted_sales == 700.0
