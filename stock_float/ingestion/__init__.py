"""Report ingestion: workbook reading, layout strategies, canonical store, cache."""

from .dispatch import parse_sheet, sniff_layout
from .events import ChangeNotifier, IngestionEvent
from .persistence import CategoryCache, InMemoryKeyValueStore, KeyValueStore
from .service import (
    WAREHOUSE_STOCK,
    IngestionService,
    UploadStatus,
    ingest_exports,
    ingest_sales_depletion,
    ingest_stock_on_hand,
    ingest_warehouse_stock,
)
from .store import CATEGORIES, EXPORTS, SALES_DEPLETION, STOCK_ON_HAND, CanonicalStore
from .workbook import read_workbook

__all__ = [
    "CATEGORIES",
    "EXPORTS",
    "SALES_DEPLETION",
    "STOCK_ON_HAND",
    "WAREHOUSE_STOCK",
    "CanonicalStore",
    "CategoryCache",
    "ChangeNotifier",
    "IngestionEvent",
    "IngestionService",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "UploadStatus",
    "ingest_exports",
    "ingest_sales_depletion",
    "ingest_stock_on_hand",
    "ingest_warehouse_stock",
    "parse_sheet",
    "read_workbook",
    "sniff_layout",
]
