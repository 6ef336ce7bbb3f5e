"""예측 정확도 계산."""

from __future__ import annotations

import dataclasses
from typing import Optional, Sequence

from ..domain.models import ProjectionPoint


def accuracy_score(predicted: float, actual: Optional[float]) -> Optional[int]:
    """
    예측 정확도 (0~100 정수).

    accuracy = round((1 - |predicted - actual| / max(predicted, actual, 1)) * 100)

    실적이 없거나 예측이 0 이면 None 을 반환합니다.

    Examples:
        >>> accuracy_score(3000, 2000)
        67
        >>> accuracy_score(3000, None) is None
        True
    """
    if actual is None or not predicted:
        return None
    denominator = max(float(predicted), float(actual), 1.0)
    score = round((1 - abs(float(predicted) - float(actual)) / denominator) * 100)
    return int(min(100, max(0, score)))


def score_periods(points: Sequence[ProjectionPoint]) -> list[ProjectionPoint]:
    """과거 기간 포인트에 accuracy 를 채운 새 목록. 미래 기간은 항상 None."""

    scored: list[ProjectionPoint] = []
    for point in points:
        accuracy = None if point.is_forward else accuracy_score(point.predicted_sales, point.actual_sales)
        scored.append(dataclasses.replace(point, accuracy=accuracy))
    return scored
