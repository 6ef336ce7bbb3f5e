"""
도메인 계층 예외 정의

이 모듈은 stock float 엔진에서 발생할 수 있는 예외를 정의합니다.
행 단위 오류는 수집 전략 내부에서 조용히 건너뛰며, 여기 정의된
예외는 시트 단위 이상의 실패를 호출자에게 알리는 데 사용합니다.
"""

from __future__ import annotations


class DomainError(Exception):
    """
    도메인 계층의 기본 예외 클래스.

    모든 도메인 예외는 이 클래스를 상속합니다.
    """

    pass


class IngestionError(DomainError):
    """
    업로드된 워크북/시트를 읽거나 변환하지 못했을 때 발생하는 예외.

    업로드 상태 메시지("error: <reason>")의 원인으로 사용됩니다.
    """

    pass


class SheetStructureError(IngestionError):
    """
    시트 구조를 해석할 수 없을 때 발생하는 예외.

    예: 헤더 행을 찾지 못함, 필수 컬럼(수량/제품) 누락.
    해당 시트만 빈 레코드 집합이 되며 다른 시트에는 영향이 없습니다.
    """

    pass


class StorageCapacityError(DomainError):
    """
    키-값 저장소의 용량 한도를 초과했을 때 발생하는 예외.

    카테고리 통합 캐시는 버리고 시트별 캐시는 유지합니다.
    """

    pass


class ValidationError(DomainError):
    """
    입력 값이 규칙을 만족하지 않을 때 발생하는 예외.

    예: 시작일이 종료일보다 늦은 날짜 범위, 음수 전망 개월 수
    """

    pass


class FilterError(DomainError):
    """
    필터링 작업 실패 시 발생하는 예외.
    """

    pass
