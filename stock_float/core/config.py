"""Configuration and constants for the stock float engine.

시장별 리드타임, 알림 임계값, 재계산 디바운스 등 전역 설정을 제공합니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


# ============================================================
# 시장별 리드타임 설정
# ============================================================

# 출고일로부터 도착 월까지의 기본 운송 개월 수
DEFAULT_LEAD_TIME_MONTHS: Mapping[str, int] = MappingProxyType(
    {
        "au": 1,
        "au-b": 1,
        "au-c": 1,
        "usa": 2,
        "ire": 3,
        "uk": 3,
        "gb": 3,
        "nl": 3,
        "den": 3,
        "pol": 3,
        "gr": 3,
    }
)


@dataclass(frozen=True)
class LeadTimeConfig:
    """운송 리드타임 관련 설정"""

    # 시장 코드 -> 운송 개월 수
    months_by_market: Mapping[str, int] = field(
        default_factory=lambda: DEFAULT_LEAD_TIME_MONTHS
    )

    # 매핑에 없는 시장의 기본 리드타임 (개월)
    default_months: int = 2

    def months_for(self, market_code: str) -> int:
        return int(self.months_by_market.get(str(market_code or "").lower(), self.default_months))


# ============================================================
# 프로젝션/알림 설정
# ============================================================

@dataclass(frozen=True)
class ProjectionConfig:
    """프로젝션 및 알림 관련 설정"""

    # 저재고 알림 임계값 (12팩 케이스 환산)
    alert_threshold: float = 500.0

    # 재고 소진 예상 알림을 발생시키는 최대 개월 수
    stockout_alert_months: int = 3

    # 날짜 범위가 없을 때 사용할 기본 전망 개월 수
    default_forward_months: int = 6


@dataclass(frozen=True)
class SchedulerConfig:
    """재계산 스케줄러 설정"""

    # 필터 변경 이벤트 병합 대기 시간 (초)
    debounce_seconds: float = 0.15


@dataclass(frozen=True)
class StorageConfig:
    """캐시 저장소 키 설정"""

    # 저장소 키 접두어 (예: vc_exports_data_<sheet>)
    key_prefix: str = "vc"


@dataclass(frozen=True)
class EngineConfig:
    """엔진 전역 설정"""

    lead_time: LeadTimeConfig = field(default_factory=LeadTimeConfig)
    projection: ProjectionConfig = field(default_factory=ProjectionConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


# ============================================================
# 전역 설정 인스턴스
# ============================================================

# 전역 설정 객체 (불변)
CONFIG = EngineConfig()
