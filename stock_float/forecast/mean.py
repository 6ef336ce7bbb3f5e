"""
판매 예측: 과거 평균

시장별로 (시장, 기간) 단위 판매량을 합산한 뒤, 데이터가 있는 서로 다른
기간 수로 나눈 평균을 예측 판매량으로 사용합니다. 시장 평균이 없으면
전체 평균을 사용합니다. 추세/계절성/감쇠는 적용하지 않으며, 같은 값이
과거와 미래 모든 기간에 그대로 쓰입니다.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

import pandas as pd

from ..domain.models import StockTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SalesForecast:
    """
    평균 판매 예측 결과.

    Attributes:
        market_averages: 시장 코드 -> 월 평균 판매량
        overall_average: 시장 구분 없는 월 평균 판매량 (대체값)
        actuals: "YYYY-MM" -> 해당 기간 실제 판매량 합계
    """

    market_averages: Mapping[str, float] = field(default_factory=dict)
    overall_average: float = 0.0
    actuals: Mapping[str, float] = field(default_factory=dict)

    def average_for(self, market_code: str) -> float:
        return float(self.market_averages.get(market_code, self.overall_average))

    def predicted_total(self, market_code: str = "") -> float:
        """집계 예측 판매량: 시장 필터가 있으면 그 시장 평균, 없으면 전체 평균."""

        if market_code:
            return self.average_for(market_code)
        return float(self.overall_average)


def compute_forecast(history: StockTable, periods_window: Optional[Sequence[str]] = None) -> SalesForecast:
    """
    판매 이력으로부터 시장별/전체 평균을 계산합니다.

    Args:
        history: 필터가 적용된 판매(또는 재고) 레코드
        periods_window: 주어지면 이 기간 키에 속한 이력만 사용

    Returns:
        SalesForecast. 기간 정보가 있는 이력이 없으면 모든 평균이 0 입니다.

    Examples:
        >>> forecast = compute_forecast(history)  # 2000, 3000, 4000
        >>> forecast.overall_average
        3000.0
    """
    if history.empty:
        return SalesForecast()

    frame = pd.DataFrame(
        {
            "market_code": history.data["market_code"],
            "period": history.period_keys(),
            "quantity": history.data["quantity"].astype(float),
        }
    )
    frame = frame[frame["period"] != ""]
    if periods_window is not None:
        frame = frame[frame["period"].isin(set(periods_window))]
    if frame.empty:
        return SalesForecast()

    by_market_period = frame.groupby(["market_code", "period"], sort=True)["quantity"].sum().reset_index()
    market_averages: dict[str, float] = {}
    for market, group in by_market_period.groupby("market_code", sort=True):
        if not market:
            continue
        market_averages[str(market)] = float(group["quantity"].sum()) / group["period"].nunique()

    actuals = frame.groupby("period", sort=True)["quantity"].sum()
    overall = float(actuals.sum()) / len(actuals)

    logger.debug(
        f"compute_forecast: {len(actuals)} periods, overall={overall:.1f}, markets={market_averages}"
    )
    return SalesForecast(
        market_averages=market_averages,
        overall_average=overall,
        actuals={str(period): float(value) for period, value in actuals.items()},
    )


def _proportional(weights: pd.Series, total: float) -> pd.Series:
    weight_sum = float(weights.sum())
    if weight_sum > 0:
        return total * weights / weight_sum
    return pd.Series(total / len(weights), index=weights.index) if len(weights) else weights


def distribute_predicted_sales(items: pd.DataFrame, forecast: SalesForecast) -> pd.Series:
    """
    품목별 예측 판매량을 배분합니다.

    시장 평균이 있는 품목은 같은 시장 그룹 안에서, 나머지 품목은 전체 품목에
    걸쳐 전체 평균을, 예측 전 float(재고 + 운송중) 비율로 나눕니다.
    가중치 합이 0 이면 균등 분배합니다.

    Args:
        items: key, market_code, stock_on_hand, in_transit 컬럼을 가진 데이터프레임

    Returns:
        items 와 같은 인덱스의 품목별 예측 판매량
    """
    if items.empty:
        return pd.Series(dtype=float)

    weights = (items["stock_on_hand"].astype(float) + items["in_transit"].astype(float)).clip(lower=0.0)
    shares = pd.Series(0.0, index=items.index)

    has_market = items["market_code"].isin(list(forecast.market_averages))
    for market, group in items[has_market].groupby("market_code", sort=False):
        shares.loc[group.index] = _proportional(weights.loc[group.index], forecast.average_for(str(market)))

    fallback = items.index[~has_market]
    if len(fallback):
        overall_share = _proportional(weights, forecast.overall_average)
        shares.loc[fallback] = overall_share.loc[fallback]
    return shares
