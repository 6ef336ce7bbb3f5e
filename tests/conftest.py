import sys
from pathlib import Path

import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stock_float.domain.models import ShipmentTable, StockTable  # noqa: E402
from stock_float.ingestion.store import (  # noqa: E402
    EXPORTS,
    SALES_DEPLETION,
    STOCK_ON_HAND,
    CanonicalStore,
)


def stock_row(**overrides):
    """캐노니컬 재고 레코드 한 건 (테스트용 기본값 포함)."""
    row = {
        "market_code": "nzl",
        "variety_code": "SAB",
        "brand_code": "JT",
        "brand_name": "Jules Taylor",
        "vintage": "2023",
        "location": "Foodstuffs",
        "product_name": "Jules Taylor Sauvignon Blanc",
        "quantity": 100.0,
        "period_month": "",
        "period_year": "",
        "source_sheet": "NZL",
        "raw_row": {},
    }
    row.update(overrides)
    return row


def shipment_row(**overrides):
    """캐노니컬 선적 레코드 한 건."""
    row = {
        "market_code": "nzl",
        "variety_code": "SAB",
        "brand_code": "JT",
        "vintage": "2023",
        "product_name": "Jules Taylor Sauvignon Blanc",
        "customer": "Foodstuffs",
        "state": "",
        "cases": 50.0,
        "status": "active",
        "status_text": "in transit",
        "shipped_date": None,
        "arrival_date": None,
        "freight_forwarder": "",
        "lead_time_months": None,
        "transit_days": None,
        "source_sheet": "Orders",
        "raw_row": {},
    }
    row.update(overrides)
    return row


def make_stock(rows):
    return StockTable.from_dataframe(pd.DataFrame(rows))


def make_shipments(rows):
    return ShipmentTable.from_dataframe(pd.DataFrame(rows))


@pytest.fixture
def today():
    return pd.Timestamp("2025-01-20")


@pytest.fixture
def sample_store():
    """재고 2건, 판매 이력 3개월, 활성 선적 1건을 가진 스토어."""
    stock = pd.DataFrame(
        [
            stock_row(location="Foodstuffs", variety_code="SAB", quantity=800.0),
            stock_row(location="Foodstuffs", variety_code="PIN", quantity=200.0),
        ]
    )
    sales = pd.DataFrame(
        [
            stock_row(quantity=2000.0, period_month="Oct", period_year="2024", source_sheet="Depletion"),
            stock_row(quantity=3000.0, period_month="Nov", period_year="2024", source_sheet="Depletion"),
            stock_row(quantity=4000.0, period_month="Dec", period_year="2024", source_sheet="Depletion"),
        ]
    )
    exports = pd.DataFrame(
        [
            shipment_row(shipped_date=pd.Timestamp("2025-01-05"), lead_time_months=2, cases=120.0),
        ]
    )
    return (
        CanonicalStore()
        .with_sheets(STOCK_ON_HAND, {"NZL": stock})
        .with_sheets(SALES_DEPLETION, {"Depletion": sales})
        .with_sheets(EXPORTS, {"Orders": exports})
    )
