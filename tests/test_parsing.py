"""
공통 값 파서 테스트 (수량, 기간, 날짜)
"""
from __future__ import annotations

import datetime as dt

import numpy as np
import pandas as pd
import pytest

from stock_float.common.parsing import (
    Period,
    add_months_safe,
    clean_text,
    full_year,
    is_empty_record,
    month_abbreviation,
    parse_date,
    parse_month_header,
    parse_period,
    parse_quantity,
)


# ============================================================
# 수량
# ============================================================

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1,200", 1200.0),
        ("$1,200", 1200.0),
        ("  42 ", 42.0),
        (15, 15.0),
        (np.int64(7), 7.0),
        (-5, 0.0),
        ("(1,200)", 0.0),
        ("-3", 0.0),
    ],
)
def test_parse_quantity_numeric_forms(raw, expected):
    assert parse_quantity(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", float("nan"), "-", True])
def test_parse_quantity_rejects_non_numeric(raw):
    assert parse_quantity(raw) is None


# ============================================================
# 기간
# ============================================================

def test_parse_period_month_year_headers():
    assert parse_period("Jan-25") == Period("2025", "Jan")
    assert parse_period("Sept-25") == Period("2025", "Sep")
    assert parse_period("January 2025").key == "2025-01"
    assert parse_period("25-Mar").key == "2025-03"
    assert parse_period("2025-11").key == "2025-11"


def test_parse_period_timestamps():
    assert parse_period(pd.Timestamp("2024-12-15")).key == "2024-12"
    assert parse_period("2025-02-01 00:00:00").key == "2025-02"


@pytest.mark.parametrize("raw", ["Total", "", None, "Region", "13/2025"])
def test_parse_period_rejects_other_labels(raw):
    assert parse_period(raw) is None


def test_parse_month_header_accepts_date_cells():
    assert parse_month_header("Jan-25") == Period("2025", "Jan")
    assert parse_month_header(dt.datetime(2025, 2, 1)).key == "2025-02"
    assert parse_month_header("2025-03-01 00:00:00").key == "2025-03"


@pytest.mark.parametrize("label", ["State", "Wine Name", "2025", "Rank", "25-Mar", None])
def test_parse_month_header_rejects_other_labels(label):
    assert parse_month_header(label) is None


def test_period_round_trips_through_key():
    period = Period.from_key("2025-09")
    assert period.month == "Sep"
    assert period.first_day() == pd.Timestamp("2025-09-01")


def test_month_abbreviation_and_full_year():
    assert month_abbreviation("7") == "Jul"
    assert month_abbreviation("december") == "Dec"
    assert month_abbreviation("13") is None
    assert full_year("49") == "2049"
    assert full_year("50") == "1950"
    assert full_year(2024) == "2024"


# ============================================================
# 날짜
# ============================================================

def test_parse_date_day_first_when_unambiguous():
    assert parse_date("15/03/2025") == pd.Timestamp("2025-03-15")


def test_parse_date_month_first_otherwise():
    assert parse_date("03/04/2025") == pd.Timestamp("2025-03-04")


def test_parse_date_iso_and_two_digit_year():
    assert parse_date("2025-01-05") == pd.Timestamp("2025-01-05")
    assert parse_date("20/06/24") == pd.Timestamp("2024-06-20")


def test_parse_date_excel_serial():
    assert parse_date(45658) == pd.Timestamp("2025-01-01")
    assert parse_date("45658") == pd.Timestamp("2025-01-01")


@pytest.mark.parametrize("raw", [None, "", "not a date", 0, "31/31/2025"])
def test_parse_date_invalid(raw):
    assert parse_date(raw) is None


@pytest.mark.parametrize("raw", [99999999, 1e300, float("inf"), "99999999"])
def test_parse_date_serial_outside_timestamp_range(raw):
    assert parse_date(raw) is None


def test_add_months_safe_clamps_day():
    assert add_months_safe(pd.Timestamp("2025-01-31"), 1) == pd.Timestamp("2025-02-28")
    assert add_months_safe(pd.Timestamp("2024-11-15"), 3) == pd.Timestamp("2025-02-15")


# ============================================================
# 기타
# ============================================================

def test_clean_text():
    assert clean_text(12.0) == "12"
    assert clean_text("  NZL ") == "NZL"
    assert clean_text(None) == ""


def test_is_empty_record_ignores_provenance_and_zeros():
    assert is_empty_record({"_row": 4, "a": "", "b": 0, "c": "0"})
    assert not is_empty_record({"a": "JT SAB"})
