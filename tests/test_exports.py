"""
수출 선적 / 창고 재고 시트 변환 테스트
"""
from __future__ import annotations

import pandas as pd
import pytest

from stock_float.domain.exceptions import SheetStructureError
from stock_float.domain.models import SHIPMENT_COLUMNS
from stock_float.ingestion import exports as exports_module
from stock_float.ingestion.exports import (
    case_size_factor,
    collapse_status,
    market_from_company,
    parse_exports,
)
from stock_float.ingestion.service import ingest_exports
from stock_float.ingestion.warehouse import WAREHOUSE_LOCATION, parse_stock_number, parse_warehouse_stock

TODAY = pd.Timestamp("2025-01-20")


def _export_rows():
    return [
        {
            "Company": "Dreyfus",
            "Product Description": "JT SAB 22",
            "Cases": 100,
            "Status": "In Transit",
            "Shipped from WWM": "2025-01-05",
            "Date Arrival": None,
        },
        {
            "Company": None,
            "Product Description": "JT PIN 21",
            "Cases": 20,
            "Status": "Complete",
            "Shipped from WWM": None,
            "Date Arrival": "2025-01-15",
        },
        {
            "Company": None,
            "Product Description": "JT ROS 23",
            "Cases": 0,
            "Status": "Waiting",
            "Shipped from WWM": None,
            "Date Arrival": None,
        },
    ]


# ============================================================
# 수출 헬퍼
# ============================================================

def test_market_from_company():
    assert market_from_company("Dreyfus") == "usa"
    assert market_from_company("dreyfus") == "usa"
    assert market_from_company("Curious Wines (Dublin)") == "ire"
    assert market_from_company("Unknown Importer") == ""


def test_case_size_factor():
    assert case_size_factor("12") == 1.0
    assert case_size_factor("6") == 0.5
    assert case_size_factor(None) == 1.0


def test_collapse_status():
    shipped = pd.Timestamp("2025-01-05")
    assert collapse_status("Complete", shipped, None, TODAY) == "complete"
    assert collapse_status("In Transit", None, None, TODAY) == "active"
    assert collapse_status("Waiting for pickup", None, None, TODAY) == "active"
    assert collapse_status("", shipped, None, TODAY) == "active"
    assert collapse_status("", shipped, pd.Timestamp("2025-02-10"), TODAY) == "active"
    assert collapse_status("", shipped, pd.Timestamp("2025-01-10"), TODAY) == "complete"
    assert collapse_status("", None, None, TODAY) == "complete"


# ============================================================
# 수출 시트
# ============================================================

def test_parse_exports_forward_fills_customer_and_shipped_date():
    frame = parse_exports(_export_rows(), "Orders", today=TODAY)

    assert list(frame.columns) == list(SHIPMENT_COLUMNS)
    assert len(frame) == 2

    first, second = frame.iloc[0], frame.iloc[1]
    assert first["customer"] == "Dreyfus"
    assert first["market_code"] == "usa"
    assert first["status"] == "active"
    assert first["lead_time_months"] == 2
    assert first["shipped_date"] == pd.Timestamp("2025-01-05")
    assert first["freight_forwarder"] == ""

    assert second["customer"] == "Dreyfus"
    assert second["status"] == "complete"
    assert second["shipped_date"] == pd.Timestamp("2025-01-05")
    assert second["arrival_date"] == pd.Timestamp("2025-01-15")
    assert second["variety_code"] == "PIN"


def test_parse_exports_header_row_below_title():
    rows = [
        {"A": "Export Orders 2025", "B": None, "C": None, "D": None},
        {"A": "Company", "B": "Product Description", "C": "Cases", "D": "Case Size"},
        {"A": "LCBO", "B": "JT SAB 22", "C": 40, "D": "6"},
    ]

    frame = parse_exports(rows, "Orders", today=TODAY)

    assert len(frame) == 1
    assert frame.loc[0, "market_code"] == "ca"
    assert frame.loc[0, "cases"] == 20.0


def test_parse_exports_out_of_range_date_cell_is_treated_as_blank():
    rows = [
        {"Company": "Dreyfus", "Product Description": "JT SAB 22", "Cases": 100, "Shipped from WWM": "2025-01-05"},
        {"Company": "Dreyfus", "Product Description": "JT PIN 21", "Cases": 50, "Shipped from WWM": 99999999},
    ]

    frame = parse_exports(rows, "Orders", today=TODAY)

    assert list(frame["variety_code"]) == ["SAB", "PIN"]
    assert list(frame["shipped_date"]) == [pd.Timestamp("2025-01-05")] * 2


def test_parse_exports_skips_a_row_that_fails_to_convert(monkeypatch):
    real_parse = exports_module.parse_descriptor

    def flaky_parse(text, **kwargs):
        if "PIN" in text:
            raise ValueError("unreadable descriptor")
        return real_parse(text, **kwargs)

    monkeypatch.setattr(exports_module, "parse_descriptor", flaky_parse)

    frame = parse_exports(_export_rows(), "Orders", today=TODAY)

    assert list(frame["variety_code"]) == ["SAB"]


def test_parse_exports_missing_columns_raise():
    rows = [{"Company": "Dreyfus", "Notes": "n/a"}]

    with pytest.raises(SheetStructureError):
        parse_exports(rows, "Orders", today=TODAY)


def test_ingest_exports_returns_empty_frame_for_bad_sheet():
    frame = ingest_exports([{"Company": "Dreyfus", "Notes": "n/a"}], "Orders", today=TODAY)

    assert frame.empty
    assert list(frame.columns) == list(SHIPMENT_COLUMNS)


# ============================================================
# 창고 재고
# ============================================================

def test_parse_stock_number():
    assert parse_stock_number("$1,234") == 1234.0
    assert parse_stock_number("") == 0.0
    assert parse_stock_number("abc") == 0.0


def test_parse_warehouse_stock_computes_available():
    rows = [
        {"Client Description": "JT SAB 22 12PK", "WW Code": "W1", "On Hand": 100, "Allocated": 20, "Pending": 10},
        {"Client Description": "", "WW Code": "", "On Hand": 5, "Allocated": 0, "Pending": 0},
    ]

    frame = parse_warehouse_stock(rows, "Warehouse")

    assert len(frame) == 1
    row = frame.iloc[0]
    assert row["location"] == WAREHOUSE_LOCATION
    assert row["quantity"] == 70.0
    assert row["variety_code"] == "SAB"
    assert row["raw_row"]["_allocated"] == 20.0


def test_parse_warehouse_stock_uses_available_column_and_halves_six_packs():
    rows = [
        {"Client Description": "JT PIN 21 6PK", "On Hand": 50, "Allocated": 0, "Pending": 0, "Available": 40},
    ]

    frame = parse_warehouse_stock(rows, "Warehouse")

    assert frame.loc[0, "quantity"] == 20.0


def test_parse_warehouse_stock_without_header_raises():
    with pytest.raises(SheetStructureError):
        parse_warehouse_stock([{"x": "a", "y": "b"}], "Warehouse")
