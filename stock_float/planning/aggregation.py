"""
유통사·품종 단위 집계

재고 레코드와 활성 선적을 (유통사, 품종) 키로 묶고, 두 집계를 외부 조인해
기간별 프로젝션의 기준 테이블을 만듭니다.

집계 키: lower(distributor) + "_" + UPPER(variety)
"""

from __future__ import annotations

import logging
import re
from typing import Any

import pandas as pd

from ..common.parsing import clean_text
from ..domain.models import STATUS_ACTIVE, ShipmentTable, StockTable

logger = logging.getLogger(__name__)

BASE_COLUMNS = ("key", "distributor", "variety_code", "market_code", "stock_on_hand", "in_transit")

_PREFIX_WITH_DASH = re.compile(r"^[A-Z]{2,3}\s*-\s*", re.IGNORECASE)
_PREFIX_WITH_SPACE = re.compile(r"^[A-Z]{2,3}\s+", re.IGNORECASE)


def clean_location(value: Any) -> str:
    """
    위치/거래처 문자열 앞의 국가 코드 접두어를 제거합니다.

    Examples:
        >>> clean_location("NZ - Foodstuffs")
        'Foodstuffs'
        >>> clean_location("AU Dan Murphys")
        'Dan Murphys'
        >>> clean_location("NSW")
        'NSW'
    """
    text = clean_text(value)
    if not text:
        return ""
    cleaned = _PREFIX_WITH_DASH.sub("", text, count=1).strip()
    if not cleaned or cleaned == text:
        cleaned = _PREFIX_WITH_SPACE.sub("", text, count=1).strip()
    return cleaned or text


def aggregation_key(distributor: Any, variety: Any) -> str:
    return f"{clean_text(distributor).lower()}_{clean_text(variety).upper()}"


def _empty_base() -> pd.DataFrame:
    return pd.DataFrame(columns=list(BASE_COLUMNS))


def _first_non_empty(values: pd.Series) -> str:
    for value in values:
        if value:
            return str(value)
    return ""


def group_stock(stock: StockTable) -> pd.DataFrame:
    """
    재고를 (유통사, 품종) 단위로 합산합니다.

    Returns:
        key, distributor, variety_code, market_code, stock_on_hand 컬럼의 데이터프레임
    """
    data = stock.data
    if data.empty:
        return _empty_base().drop(columns=["in_transit"])

    frame = pd.DataFrame(
        {
            "distributor": data["location"].map(clean_location).str.lower(),
            "variety_code": data["variety_code"].str.upper(),
            "market_code": data["market_code"],
            "stock_on_hand": data["quantity"].astype(float),
        }
    )
    grouped = (
        frame.groupby(["distributor", "variety_code"], as_index=False, sort=True)
        .agg(stock_on_hand=("stock_on_hand", "sum"), market_code=("market_code", _first_non_empty))
    )
    grouped.insert(0, "key", [aggregation_key(d, v) for d, v in zip(grouped["distributor"], grouped["variety_code"])])
    logger.debug(f"group_stock: {len(data)} records -> {len(grouped)} items")
    return grouped.loc[:, ["key", "distributor", "variety_code", "market_code", "stock_on_hand"]]


def shipment_items(shipments: pd.DataFrame) -> pd.DataFrame:
    """선적 행에 distributor(정리된 거래처) 와 key 컬럼을 추가한 복사본."""

    out = shipments.copy()
    if out.empty:
        out["distributor"] = pd.Series(dtype=str)
        out["key"] = pd.Series(dtype=str)
        return out
    out["distributor"] = out["customer"].map(clean_location).str.lower()
    out["variety_code"] = out["variety_code"].str.upper()
    out["key"] = [aggregation_key(d, v) for d, v in zip(out["distributor"], out["variety_code"])]
    return out


def group_active_shipments(shipments: ShipmentTable) -> pd.DataFrame:
    """활성(선적 대기/운송중) 선적을 (시장, 유통사, 품종) 단위로 합산합니다."""

    active = shipments.data[shipments.data["status"] == STATUS_ACTIVE] if not shipments.empty else shipments.data
    if active.empty:
        return pd.DataFrame(columns=["key", "distributor", "variety_code", "market_code", "in_transit"])

    items = shipment_items(active)
    grouped = (
        items.groupby(["market_code", "distributor", "variety_code"], as_index=False, sort=True)
        .agg(in_transit=("cases", "sum"))
    )
    grouped.insert(0, "key", [aggregation_key(d, v) for d, v in zip(grouped["distributor"], grouped["variety_code"])])
    return grouped.loc[:, ["key", "distributor", "variety_code", "market_code", "in_transit"]]


def merge_stock_float(stock_items: pd.DataFrame, transit_items: pd.DataFrame) -> pd.DataFrame:
    """
    재고 집계와 운송중 집계를 외부 조인합니다.

    재고만 있는 항목은 in_transit=0, 선적만 있는 항목은 stock_on_hand=0 이 되고,
    같은 키가 여러 시장에 걸친 선적은 합산됩니다.
    """
    if stock_items.empty and transit_items.empty:
        return _empty_base()

    stock = stock_items.loc[:, ["key", "distributor", "variety_code", "market_code", "stock_on_hand"]] if not stock_items.empty else None
    transit = None
    if not transit_items.empty:
        transit = (
            transit_items.groupby("key", as_index=False, sort=True)
            .agg(
                distributor=("distributor", "first"),
                variety_code=("variety_code", "first"),
                market_code=("market_code", _first_non_empty),
                in_transit=("in_transit", "sum"),
            )
        )

    if stock is None:
        merged = transit.assign(stock_on_hand=0.0)
    elif transit is None:
        merged = stock.assign(in_transit=0.0)
    else:
        merged = stock.merge(transit, on="key", how="outer", suffixes=("", "_transit"))
        for column in ("distributor", "variety_code", "market_code"):
            merged[column] = merged[column].where(
                merged[column].notna() & (merged[column] != ""), merged[f"{column}_transit"]
            )
        merged = merged.drop(columns=[f"{c}_transit" for c in ("distributor", "variety_code", "market_code")])

    merged["stock_on_hand"] = pd.to_numeric(merged["stock_on_hand"], errors="coerce").fillna(0.0)
    merged["in_transit"] = pd.to_numeric(merged["in_transit"], errors="coerce").fillna(0.0)
    for column in ("distributor", "variety_code", "market_code"):
        merged[column] = merged[column].fillna("").astype(str)
    return merged.loc[:, list(BASE_COLUMNS)].sort_values("key").reset_index(drop=True)
