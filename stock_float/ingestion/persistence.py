"""
캐시 저장소 포트

저장소 구현(브라우저 로컬 스토리지, 파일, 메모리 등)은 외부 협력자이며,
엔진은 get/set/remove 키-값 계약만 사용합니다.

키 규칙 (StorageConfig.key_prefix = "vc"):
- vc_{category}_data_{sheet}: 시트별 레코드
- vc_{category}_meta: {"sheetNames": [...], "sheetCounts": {...}}
- vc_{category}_data: 카테고리 전체 레코드 (용량 초과 시 생략)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

import pandas as pd

from ..core.config import CONFIG
from ..domain.exceptions import StorageCapacityError
from .store import CATEGORIES, CanonicalStore, frame_to_records, records_to_frame

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """엔진이 사용하는 최소 키-값 저장소 계약."""

    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """
    JSON 텍스트로 값을 보관하는 메모리 저장소.

    capacity 가 주어지면 저장된 JSON 텍스트 길이 합계가 capacity 를 넘는
    쓰기에서 StorageCapacityError 를 발생시킵니다 (기존 값은 유지).
    """

    def __init__(self, capacity: Optional[int] = None) -> None:
        self.capacity = capacity
        self._data: dict[str, str] = {}

    @property
    def used(self) -> int:
        return sum(len(text) for text in self._data.values())

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def get(self, key: str) -> Any:
        text = self._data.get(key)
        if text is None:
            return None
        return json.loads(text)

    def set(self, key: str, value: Any) -> None:
        text = json.dumps(value, ensure_ascii=False)
        if self.capacity is not None:
            projected = self.used - len(self._data.get(key, "")) + len(text)
            if projected > self.capacity:
                raise StorageCapacityError(
                    f"Writing '{key}' needs {projected} chars, capacity is {self.capacity}"
                )
        self._data[key] = text

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


@dataclass(frozen=True)
class CacheWriteResult:
    """카테고리 저장 결과. combined_cached=False 면 전체 키는 용량 문제로 생략된 것입니다."""

    category: str
    sheet_names: tuple[str, ...]
    combined_cached: bool
    skipped_sheets: tuple[str, ...] = ()


class CategoryCache:
    """카테고리 단위로 캐노니컬 시트를 키-값 저장소에 저장/복원합니다."""

    def __init__(self, backend: KeyValueStore, *, prefix: str = CONFIG.storage.key_prefix) -> None:
        self.backend = backend
        self.prefix = prefix

    # ========================================
    # 키 규칙
    # ========================================

    def sheet_key(self, category: str, sheet_name: str) -> str:
        return f"{self.prefix}_{category}_data_{sheet_name}"

    def meta_key(self, category: str) -> str:
        return f"{self.prefix}_{category}_meta"

    def data_key(self, category: str) -> str:
        return f"{self.prefix}_{category}_data"

    # ========================================
    # 저장
    # ========================================

    def save(self, category: str, sheets: Mapping[str, pd.DataFrame]) -> CacheWriteResult:
        """
        카테고리의 시트들을 저장합니다.

        시트별 키 -> 메타 -> 전체 키 순서로 씁니다. 용량 초과는 예외로
        전파하지 않습니다: 시트 키 실패는 해당 시트만 건너뛰고, 전체 키
        실패는 전체 키를 제거한 뒤 시트별 키를 그대로 둡니다.
        """
        previous = self.backend.get(self.meta_key(category)) or {}
        for stale in previous.get("sheetNames", []):
            if stale not in sheets:
                self.backend.remove(self.sheet_key(category, stale))

        saved: list[str] = []
        skipped: list[str] = []
        combined: list[dict[str, Any]] = []
        for sheet_name, frame in sheets.items():
            records = frame_to_records(frame)
            combined.extend(records)
            try:
                self.backend.set(self.sheet_key(category, sheet_name), records)
            except StorageCapacityError as exc:
                logger.warning(f"Sheet cache skipped for {category}/{sheet_name}: {exc}")
                self.backend.remove(self.sheet_key(category, sheet_name))
                skipped.append(sheet_name)
                continue
            saved.append(sheet_name)

        meta = {
            "sheetNames": saved,
            "sheetCounts": {name: int(len(sheets[name])) for name in saved},
        }
        try:
            self.backend.set(self.meta_key(category), meta)
        except StorageCapacityError as exc:
            logger.warning(f"Metadata cache skipped for {category}: {exc}")

        combined_cached = True
        try:
            self.backend.set(self.data_key(category), combined)
        except StorageCapacityError as exc:
            logger.warning(f"Combined cache dropped for {category}, per-sheet keys kept: {exc}")
            self.backend.remove(self.data_key(category))
            combined_cached = False

        logger.debug(f"Cached {category}: sheets={saved} skipped={skipped} combined={combined_cached}")
        return CacheWriteResult(
            category=category,
            sheet_names=tuple(saved),
            combined_cached=combined_cached,
            skipped_sheets=tuple(skipped),
        )

    # ========================================
    # 복원
    # ========================================

    def load(self, category: str) -> dict[str, pd.DataFrame]:
        """시트별 키에서 카테고리를 복원합니다. 메타가 없으면 전체 키를 source_sheet 로 나눕니다."""

        meta = self.backend.get(self.meta_key(category))
        if meta:
            out: dict[str, pd.DataFrame] = {}
            for sheet_name in meta.get("sheetNames", []):
                records = self.backend.get(self.sheet_key(category, sheet_name))
                if records is None:
                    logger.debug(f"Missing cached sheet {category}/{sheet_name}")
                    continue
                out[sheet_name] = records_to_frame(category, records)
            return out

        combined = self.backend.get(self.data_key(category))
        if not combined:
            return {}
        grouped: dict[str, list[dict[str, Any]]] = {}
        for record in combined:
            grouped.setdefault(str(record.get("source_sheet") or category), []).append(record)
        return {name: records_to_frame(category, records) for name, records in grouped.items()}

    def restore_store(self) -> CanonicalStore:
        store = CanonicalStore()
        for category in CATEGORIES:
            sheets = self.load(category)
            if sheets:
                store = store.with_sheets(category, sheets)
        return store

    def clear(self, category: str) -> None:
        meta = self.backend.get(self.meta_key(category)) or {}
        for sheet_name in meta.get("sheetNames", []):
            self.backend.remove(self.sheet_key(category, sheet_name))
        self.backend.remove(self.meta_key(category))
        self.backend.remove(self.data_key(category))
