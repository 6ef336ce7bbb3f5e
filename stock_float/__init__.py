"""
Stock Float 엔진 패키지

지역별 재고/판매/수출 리포트를 정규화하여 유통사·품종 단위의
stock float(재고 + 운송중 − 예상 판매) 추이를 계산합니다.
주요 구성:
- 제품 설명(SKU) 파서와 시장/품종 어휘 정규화
- 시트 레이아웃별 수집 전략과 캐노니컬 스토어
- 집계, 운송 스케줄링, 평균 기반 예측, 알림 생성 파이프라인
"""

from __future__ import annotations

__version__ = "1.0.0"
