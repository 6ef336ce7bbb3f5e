"""판매 예측 모듈 (과거 평균 기반)."""

from .mean import SalesForecast, compute_forecast, distribute_predicted_sales

__all__ = ["SalesForecast", "compute_forecast", "distribute_predicted_sales"]
