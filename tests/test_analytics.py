"""
예측 정확도, 알림, KPI, 선적 소요일 통계 테스트
"""
from __future__ import annotations

import pandas as pd
import pytest

from conftest import make_shipments, shipment_row
from stock_float.analytics.accuracy import accuracy_score, score_periods
from stock_float.analytics.alerts import (
    CRITICAL,
    HIGH,
    INFO,
    MEDIUM,
    WARNING,
    generate_alerts,
    item_severity,
    months_until_stockout,
    stockout_severity,
)
from stock_float.analytics.kpi import summarize_kpis
from stock_float.analytics.shipping import shipping_days, shipping_time_stats
from stock_float.core.config import ProjectionConfig
from stock_float.domain.models import Alert, DistributorVarietyProjection, KpiSummary, ProjectionPoint


def _item(stock=0.0, transit=0.0, predicted=0.0, distributor="foodstuffs", variety="SAB"):
    raw = stock + transit - predicted
    return DistributorVarietyProjection(
        distributor=distributor,
        variety_code=variety,
        market_code="nzl",
        stock_on_hand=stock,
        in_transit=transit,
        predicted_sales=predicted,
        stock_float=max(0.0, raw),
        raw_stock_float=raw,
    )


def _point(period, items=(), predicted=None, is_forward=True, actual=None):
    stock = sum(item.stock_on_hand for item in items)
    transit = sum(item.in_transit for item in items)
    predicted = sum(item.predicted_sales for item in items) if predicted is None else predicted
    raw = stock + transit - predicted
    return ProjectionPoint(
        period=period,
        stock_on_hand=stock,
        in_transit=transit,
        predicted_sales=predicted,
        stock_float=max(0.0, raw),
        raw_stock_float=raw,
        is_forward=is_forward,
        actual_sales=actual,
        breakdown=tuple(items),
    )


# ============================================================
# 예측 정확도
# ============================================================

@pytest.mark.parametrize(
    "predicted, actual, expected",
    [
        (3000, 2000, 67),
        (3000, 3000, 100),
        (3000, 4000, 75),
        (100, 0, 0),
        (5, 100000, 0),
    ],
)
def test_accuracy_score(predicted, actual, expected):
    assert accuracy_score(predicted, actual) == expected


def test_accuracy_score_undefined_cases():
    assert accuracy_score(3000, None) is None
    assert accuracy_score(0, 500) is None


def test_score_periods_skips_forward_periods():
    points = [
        _point("2024-12", predicted=3000.0, is_forward=False, actual=2000.0),
        _point("2025-01", predicted=3000.0, is_forward=True, actual=2000.0),
    ]

    scored = score_periods(points)

    assert [p.accuracy for p in scored] == [67, None]
    assert points[0].accuracy is None


# ============================================================
# 알림
# ============================================================

def test_item_severity_bands():
    assert item_severity(0.0, -50.0, 500.0) == CRITICAL
    assert item_severity(100.0, 100.0, 500.0) == WARNING
    assert item_severity(300.0, 300.0, 500.0) == INFO


def test_generate_alerts_item_and_aggregate():
    config = ProjectionConfig(alert_threshold=500.0, stockout_alert_months=0)
    points = [
        _point(
            "2025-01",
            [
                _item(stock=400.0, predicted=100.0, variety="SAB"),
                _item(stock=50.0, predicted=100.0, variety="PIN"),
                _item(stock=900.0, predicted=100.0, variety="CHR"),
            ],
            predicted=2000.0,
        )
    ]

    alerts = generate_alerts(points, config)

    by_id = {alert.id: alert for alert in alerts}
    assert set(by_id) == {
        "alert_foodstuffs_SAB_2025-01",
        "alert_foodstuffs_PIN_2025-01",
        "alert_aggregate_2025-01",
    }
    assert by_id["alert_foodstuffs_SAB_2025-01"].severity == INFO
    assert by_id["alert_foodstuffs_PIN_2025-01"].severity == CRITICAL
    aggregate = by_id["alert_aggregate_2025-01"]
    assert aggregate.scope == "aggregate"
    assert aggregate.distributor == "all"
    assert aggregate.severity == CRITICAL
    assert [alert.scope for alert in alerts] == ["item", "item", "aggregate"]


def test_generate_alerts_nothing_below_threshold():
    points = [_point("2025-01", [_item(stock=5000.0, predicted=100.0)])]

    assert generate_alerts(points, ProjectionConfig(stockout_alert_months=0)) == []


def test_months_until_stockout_walks_periods():
    history = [
        _item(stock=300.0, predicted=100.0),
        _item(stock=300.0, predicted=100.0),
        _item(stock=300.0, predicted=100.0),
        _item(stock=300.0, predicted=100.0),
    ]

    assert months_until_stockout(history) == 3


def test_months_until_stockout_extrapolates_and_handles_no_sales():
    assert months_until_stockout([_item(stock=1000.0, predicted=100.0), _item(stock=1000.0, predicted=100.0)]) == 10
    assert months_until_stockout([_item(stock=1000.0)]) is None
    assert months_until_stockout([]) is None
    assert months_until_stockout([_item()]) == 0


def test_stockout_severity():
    assert stockout_severity(0) == CRITICAL
    assert stockout_severity(1) == CRITICAL
    assert stockout_severity(2) == HIGH
    assert stockout_severity(3) == MEDIUM


def test_generate_alerts_stockout():
    points = [
        _point("2025-01", [_item(stock=1000.0, predicted=600.0, distributor="dreyfus", variety="PIN")]),
        _point("2025-02", [_item(stock=1000.0, predicted=600.0, distributor="dreyfus", variety="PIN")]),
        _point("2025-03", [_item(stock=1000.0, predicted=600.0, distributor="dreyfus", variety="PIN")]),
    ]

    alerts = [a for a in generate_alerts(points, ProjectionConfig(alert_threshold=0.0)) if a.scope == "stockout"]

    assert len(alerts) == 1
    assert alerts[0].id == "alert_stockout_dreyfus_PIN"
    assert alerts[0].severity == HIGH
    assert alerts[0].period == "2025-01"
    assert "2 months" in alerts[0].description


# ============================================================
# KPI
# ============================================================

def test_summarize_kpis_uses_last_two_periods():
    points = score_periods(
        [
            _point("2024-12", predicted=3000.0, is_forward=False, actual=4000.0),
            _point("2025-01", [_item(stock=3500.0)], predicted=3000.0),
        ]
    )
    alerts = [
        Alert("a1", "x", "SAB", "2024-12", 0.0, CRITICAL, ""),
        Alert("a2", "x", "PIN", "2024-12", 100.0, WARNING, ""),
        Alert("a3", "x", "PIN", "2025-01", 100.0, WARNING, ""),
    ]

    kpis = summarize_kpis(points, alerts)

    assert kpis.avg_float_now == 500.0
    assert kpis.avg_float_prev == 0.0
    assert kpis.forecast_acc_now == 0.0
    assert kpis.forecast_acc_prev == 75.0
    assert (kpis.critical_now, kpis.critical_prev) == (0, 1)
    assert (kpis.at_risk_now, kpis.at_risk_prev) == (1, 2)


def test_summarize_kpis_single_and_no_points():
    kpis = summarize_kpis([_point("2025-01", [_item(stock=700.0)], predicted=100.0)], [])

    assert kpis.avg_float_now == 600.0
    assert kpis.avg_float_prev == 0.0
    assert summarize_kpis([], []) == KpiSummary()


# ============================================================
# 선적 소요일
# ============================================================

def test_shipping_time_stats():
    shipments = make_shipments(
        [
            shipment_row(
                status="complete",
                customer="Dreyfus",
                freight_forwarder="Kuehne",
                shipped_date=pd.Timestamp("2025-01-01"),
                arrival_date=pd.Timestamp("2025-02-15"),
            ),
            shipment_row(
                status="complete",
                customer="LCBO",
                freight_forwarder="Kuehne",
                shipped_date=pd.Timestamp("2025-01-01"),
                arrival_date=pd.Timestamp("2025-01-31"),
            ),
            shipment_row(status="active", shipped_date=pd.Timestamp("2025-01-01")),
            shipment_row(
                status="complete",
                shipped_date=pd.Timestamp("2025-03-01"),
                arrival_date=pd.Timestamp("2025-02-01"),
            ),
        ]
    )

    report = shipping_time_stats(shipments)

    assert len(shipping_days(shipments)) == 2
    assert report.overall.count == 2
    assert report.overall.average == 37.5
    assert (report.overall.minimum, report.overall.maximum) == (30.0, 45.0)
    assert report.by_customer["Dreyfus"].average == 45.0
    assert report.by_forwarder["Kuehne"].count == 2


def test_shipping_time_stats_empty():
    assert shipping_time_stats(make_shipments([])).overall.count == 0
