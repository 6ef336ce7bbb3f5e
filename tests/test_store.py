"""
캐노니컬 스토어 / 캐시 / 수집 서비스 테스트
"""
from __future__ import annotations

import pandas as pd
import pytest

from conftest import shipment_row, stock_row
from stock_float.domain.exceptions import IngestionError, StorageCapacityError
from stock_float.ingestion import service as service_module
from stock_float.ingestion.events import ChangeNotifier, IngestionEvent
from stock_float.ingestion.persistence import CategoryCache, InMemoryKeyValueStore
from stock_float.ingestion.service import (
    WAREHOUSE_STOCK,
    IngestionService,
    ingest_sales_depletion,
    ingest_stock_on_hand,
    ingest_warehouse_stock,
)
from stock_float.ingestion.store import (
    EXPORTS,
    SALES_DEPLETION,
    STOCK_ON_HAND,
    CanonicalStore,
    frame_to_records,
    records_to_frame,
)


def _generic_rows(qty):
    return [{"Product": "JT SAB 22", "Country": "NZ", "Location": "Foodstuffs", "Qty": qty}]


# ============================================================
# 스토어
# ============================================================

def test_with_sheets_replaces_same_named_sheet_only():
    first = pd.DataFrame([stock_row(quantity=10.0)])
    second = pd.DataFrame([stock_row(quantity=20.0), stock_row(quantity=5.0)])
    other = pd.DataFrame([stock_row(quantity=1.0, source_sheet="AU")])

    store = CanonicalStore().with_sheets(STOCK_ON_HAND, {"NZL": first, "AU": other})
    updated = store.with_sheet(STOCK_ON_HAND, "NZL", second)

    assert store.sheet_counts(STOCK_ON_HAND) == {"NZL": 1, "AU": 1}
    assert updated.sheet_counts(STOCK_ON_HAND) == {"NZL": 2, "AU": 1}
    assert updated.stock_table().data["quantity"].sum() == 26.0


def test_store_rejects_unknown_category():
    with pytest.raises(ValueError):
        CanonicalStore().with_sheets("forecasts", {})


def test_empty_store_tables_are_typed():
    store = CanonicalStore()

    assert not store.has_records(EXPORTS)
    shipments = store.shipment_table().data
    assert shipments.empty
    assert str(shipments["shipped_date"].dtype).startswith("datetime64")


def test_without_category():
    store = CanonicalStore().with_sheet(SALES_DEPLETION, "S", pd.DataFrame([stock_row()]))

    assert store.without_category(SALES_DEPLETION).record_count(SALES_DEPLETION) == 0
    assert store.record_count(SALES_DEPLETION) == 1


def test_records_json_round_trip_keeps_dates():
    frame = CanonicalStore().with_sheet(
        EXPORTS, "Orders", pd.DataFrame([shipment_row(shipped_date=pd.Timestamp("2025-01-05"))])
    ).records(EXPORTS)

    records = frame_to_records(frame)
    assert records[0]["shipped_date"] == "2025-01-05"
    assert records[0]["arrival_date"] is None

    restored = records_to_frame(EXPORTS, records)
    assert restored.loc[0, "shipped_date"] == pd.Timestamp("2025-01-05")


# ============================================================
# 캐시
# ============================================================

class _RejectingStore(InMemoryKeyValueStore):
    """지정한 키 쓰기를 용량 초과로 거절하는 저장소."""

    def __init__(self, rejected):
        super().__init__()
        self.rejected = set(rejected)

    def set(self, key, value):
        if key in self.rejected:
            raise StorageCapacityError(f"{key} rejected")
        super().set(key, value)


def test_in_memory_capacity_keeps_previous_value():
    backend = InMemoryKeyValueStore(capacity=20)
    backend.set("a", "short")

    with pytest.raises(StorageCapacityError):
        backend.set("a", "x" * 50)

    assert backend.get("a") == "short"
    assert backend.get("missing") is None


def test_cache_save_and_load_per_sheet():
    backend = InMemoryKeyValueStore()
    cache = CategoryCache(backend)
    sheets = {"NZL": CanonicalStore().with_sheet(STOCK_ON_HAND, "NZL", pd.DataFrame([stock_row()])).records(STOCK_ON_HAND)}

    result = cache.save(STOCK_ON_HAND, sheets)

    assert result.combined_cached
    assert backend.get("vc_stock-on-hand_meta") == {"sheetNames": ["NZL"], "sheetCounts": {"NZL": 1}}
    loaded = cache.load(STOCK_ON_HAND)
    assert list(loaded) == ["NZL"]
    assert loaded["NZL"].loc[0, "quantity"] == 100.0


def test_cache_combined_key_dropped_on_capacity_error():
    backend = _RejectingStore({"vc_exports_data"})
    cache = CategoryCache(backend)
    frame = CanonicalStore().with_sheet(EXPORTS, "Orders", pd.DataFrame([shipment_row()])).records(EXPORTS)

    result = cache.save(EXPORTS, {"Orders": frame})

    assert not result.combined_cached
    assert "vc_exports_data" not in backend.keys()
    assert "vc_exports_data_Orders" in backend.keys()
    assert len(cache.load(EXPORTS)["Orders"]) == 1


def test_cache_skips_sheet_that_does_not_fit():
    backend = _RejectingStore({"vc_stock-on-hand_data_Big"})
    cache = CategoryCache(backend)
    frame = pd.DataFrame([stock_row()])

    result = cache.save(STOCK_ON_HAND, {"Big": frame, "Small": frame})

    assert result.sheet_names == ("Small",)
    assert result.skipped_sheets == ("Big",)
    assert list(cache.load(STOCK_ON_HAND)) == ["Small"]


def test_cache_load_falls_back_to_combined_key():
    backend = InMemoryKeyValueStore()
    backend.set("vc_sales-depletion_data", [stock_row(source_sheet="A"), stock_row(source_sheet="B")])

    loaded = CategoryCache(backend).load(SALES_DEPLETION)

    assert sorted(loaded) == ["A", "B"]


def test_cache_removes_stale_sheets_and_clear():
    backend = InMemoryKeyValueStore()
    cache = CategoryCache(backend)
    frame = pd.DataFrame([stock_row()])
    cache.save(STOCK_ON_HAND, {"Old": frame})
    cache.save(STOCK_ON_HAND, {"New": frame})

    assert "vc_stock-on-hand_data_Old" not in backend.keys()

    cache.clear(STOCK_ON_HAND)
    assert backend.keys() == []


def test_restore_store(sample_store):
    cache = CategoryCache(InMemoryKeyValueStore())
    for category, sheets in sample_store.sheets.items():
        cache.save(category, sheets)

    restored = cache.restore_store()

    assert restored.sheet_counts(STOCK_ON_HAND) == sample_store.sheet_counts(STOCK_ON_HAND)
    assert restored.record_count(EXPORTS) == 1
    assert restored.shipment_table().data.loc[0, "shipped_date"] == pd.Timestamp("2025-01-05")


# ============================================================
# 이벤트
# ============================================================

def test_change_notifier_subscribe_and_unsubscribe():
    notifier = ChangeNotifier()
    seen = []
    unsubscribe = notifier.subscribe(seen.append)
    event = IngestionEvent(category=EXPORTS, sheet_count=1, record_count=3)

    notifier.publish(event)
    unsubscribe()
    notifier.publish(event)

    assert seen == [event]


# ============================================================
# 수집 서비스
# ============================================================

def test_ingest_sheets_updates_store_cache_and_notifies():
    backend = InMemoryKeyValueStore()
    events = []
    service = IngestionService(cache=CategoryCache(backend))
    service.notifier.subscribe(events.append)

    status = service.ingest_sheets({"Stock": _generic_rows(12)}, STOCK_ON_HAND)

    assert status.ok
    assert status.message == "processed 1 records"
    assert status.sheet_counts == {"Stock": 1}
    assert service.store.record_count(STOCK_ON_HAND) == 1
    assert backend.get("vc_stock-on-hand_meta")["sheetNames"] == ["Stock"]
    assert events == [IngestionEvent(category=STOCK_ON_HAND, sheet_count=1, record_count=1)]


def test_ingest_sheets_replaces_by_sheet_name():
    service = IngestionService()
    service.ingest_sheets({"Stock": _generic_rows(12), "Other": _generic_rows(3)}, STOCK_ON_HAND)
    service.ingest_sheets({"Stock": _generic_rows(40)}, STOCK_ON_HAND)

    counts = service.store.sheet_counts(STOCK_ON_HAND)
    assert counts == {"Stock": 1, "Other": 1}
    assert service.store.stock_table().data["quantity"].sum() == 43.0


def test_ingest_sheets_no_records_leaves_store_untouched():
    service = IngestionService()
    events = []
    service.notifier.subscribe(events.append)

    status = service.ingest_sheets({"Misc": [{"foo": "bar"}]}, STOCK_ON_HAND)

    assert not status.ok
    assert status.message == "error: no records found"
    assert service.store.record_count(STOCK_ON_HAND) == 0
    assert events == []


def test_ingest_sheets_unknown_kind():
    status = IngestionService().ingest_sheets({"x": []}, "forecasts")

    assert not status.ok
    assert status.message.startswith("error: unknown upload kind")


def test_warehouse_upload_lands_in_stock_on_hand():
    rows = [{"Client Description": "JT SAB 22", "On Hand": 30, "Allocated": 0, "Pending": 0}]
    service = IngestionService()

    status = service.ingest_sheets({"Warehouse": rows}, WAREHOUSE_STOCK)

    assert status.ok
    assert service.store.sheet_names(STOCK_ON_HAND) == ["Warehouse"]


def test_ingest_workbook_csv_and_unreadable_file():
    service = IngestionService()
    payload = (
        b"Country,State,Year,Month,Brand,Variety,Channel,Month Sales 9LE\n"
        b"NZ,,2025,Jan,Jules Taylor,SAB,Grocery,120\n"
    )

    ok = service.ingest_workbook(payload, SALES_DEPLETION, filename="NZL.csv")
    bad = service.ingest_workbook(b"garbage", SALES_DEPLETION, filename="broken.xlsx")

    assert ok.ok and ok.record_count == 1
    assert not bad.ok
    assert bad.message.startswith("error: ")
    assert service.store.record_count(SALES_DEPLETION) == 1


def test_row_entry_points_return_canonical_frames():
    stock = ingest_stock_on_hand(_generic_rows(12), "Stock")
    sales = ingest_sales_depletion(_generic_rows(7), "Stock")
    warehouse = ingest_warehouse_stock([{"Client Description": "JT SAB 22", "On Hand": 30}], "Warehouse")

    assert stock["quantity"].tolist() == [12.0]
    assert sales["quantity"].tolist() == [7.0]
    assert warehouse["quantity"].tolist() == [30.0]


def test_warehouse_entry_point_returns_empty_frame_for_unknown_layout():
    frame = ingest_warehouse_stock([{"foo": "bar"}], "Warehouse")

    assert frame.empty
    assert "quantity" in frame.columns


def test_sheet_level_failure_becomes_empty_sheet(monkeypatch):
    def strict_parser(rows, sheet_name):
        if sheet_name == "Broken":
            raise IngestionError(f"{sheet_name}: unsupported layout")
        return ingest_stock_on_hand(rows, sheet_name)

    monkeypatch.setitem(service_module.UPLOAD_KINDS, "strict-stock", (STOCK_ON_HAND, strict_parser))
    service = IngestionService()

    status = service.ingest_sheets({"Stock": _generic_rows(12), "Broken": _generic_rows(5)}, "strict-stock")

    assert status.ok
    assert status.sheet_counts == {"Stock": 1, "Broken": 0}
    assert service.store.stock_table().data["quantity"].sum() == 12.0
