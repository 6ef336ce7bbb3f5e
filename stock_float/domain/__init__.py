"""
도메인 계층 퍼블릭 API

이 모듈은 도메인 계층의 주요 클래스와 함수를 재수출하여
일관된 퍼블릭 API를 제공합니다.
"""
from __future__ import annotations

from .exceptions import (
    DomainError,
    FilterError,
    IngestionError,
    SheetStructureError,
    StorageCapacityError,
    ValidationError,
)
from .models import (
    Alert,
    DistributorVarietyProjection,
    KpiSummary,
    ProjectionPoint,
    ProjectionResult,
    ShipmentTable,
    StockTable,
)
from .descriptor import ProductDescriptor, parse_descriptor, to_case_equivalents
from .vocabulary import detect_brand_code, normalize_variety_code, variety_display_name
from .filters import (
    FilterOptions,
    FilterSelection,
    build_periods,
    extract_filter_options,
    filter_shipments,
    filter_stock,
)

__all__ = [
    # 예외
    "DomainError",
    "IngestionError",
    "SheetStructureError",
    "StorageCapacityError",
    "ValidationError",
    "FilterError",
    # 모델
    "StockTable",
    "ShipmentTable",
    "DistributorVarietyProjection",
    "ProjectionPoint",
    "Alert",
    "KpiSummary",
    "ProjectionResult",
    # 제품 설명/어휘
    "ProductDescriptor",
    "parse_descriptor",
    "to_case_equivalents",
    "normalize_variety_code",
    "variety_display_name",
    "detect_brand_code",
    # 필터
    "FilterSelection",
    "FilterOptions",
    "filter_stock",
    "filter_shipments",
    "build_periods",
    "extract_filter_options",
]
