"""
업로드 파일 로더

이 모듈은 업로드된 워크북(.xlsx) 또는 구분자 텍스트(.csv)를 읽어
시트 이름별 원본 행 목록으로 변환합니다. 각 시트의 첫 번째 비어 있지 않은
행을 헤더로 사용하며, 빈 헤더는 Column_{n} 으로 채웁니다.
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

import pandas as pd

from ..common.parsing import clean_text
from ..domain.exceptions import IngestionError

logger = logging.getLogger(__name__)

WorkbookSource = Union[str, Path, bytes, BinaryIO]

_CSV_SUFFIXES = {".csv", ".txt", ".tsv"}


def _source_name(source: WorkbookSource, filename: Optional[str]) -> str:
    if filename:
        return filename
    if isinstance(source, (str, Path)):
        return str(source)
    return str(getattr(source, "name", ""))


def grid_to_records(grid: pd.DataFrame) -> list[dict[str, Any]]:
    """
    헤더 없는 셀 그리드를 헤더 키 기반 레코드 목록으로 변환합니다.

    Args:
        grid: header=None 으로 읽은 데이터프레임

    Returns:
        첫 번째 비어 있지 않은 행을 키로 사용한 레코드 목록.
        모든 셀은 앞뒤 공백을 제거한 문자열입니다.
    """
    if grid.empty:
        return []
    cells = grid.apply(lambda column: column.map(clean_text))
    non_empty = cells.apply(lambda row: any(value != "" for value in row), axis=1)
    if not non_empty.any():
        return []

    header_pos = int(non_empty.to_numpy().argmax())
    header: list[str] = []
    seen: dict[str, int] = {}
    for idx, value in enumerate(cells.iloc[header_pos].tolist(), start=1):
        label = value or f"Column_{idx}"
        if label in seen:
            seen[label] += 1
            label = f"{label}_{seen[label]}"
        else:
            seen[label] = 0
        header.append(label)

    records: list[dict[str, Any]] = []
    for values in cells.iloc[header_pos + 1:].itertuples(index=False, name=None):
        if not any(value != "" for value in values):
            continue
        records.append(dict(zip(header, values)))
    return records


def read_workbook(source: WorkbookSource, *, filename: Optional[str] = None) -> dict[str, list[dict[str, Any]]]:
    """
    워크북 또는 CSV 파일을 시트별 레코드 목록으로 읽습니다.

    Args:
        source: 파일 경로, 바이트, 또는 바이너리 파일 객체
        filename: 확장자 판별용 파일 이름 (source 가 바이트일 때 사용)

    Returns:
        시트 이름 -> 레코드 목록 딕셔너리 (CSV 는 파일 이름을 시트 이름으로 사용)

    Raises:
        IngestionError: 파일을 읽을 수 없을 때
    """
    name = _source_name(source, filename)
    suffix = Path(name).suffix.lower()
    handle: Any = io.BytesIO(source) if isinstance(source, bytes) else source

    try:
        if suffix in _CSV_SUFFIXES:
            sep = "\t" if suffix == ".tsv" else ","
            grid = pd.read_csv(handle, header=None, dtype=str, keep_default_na=False, sep=sep)
            sheets = {Path(name).stem or "Sheet1": grid}
        else:
            sheets = pd.read_excel(handle, sheet_name=None, header=None, dtype=object, engine="openpyxl")
    except (OSError, ValueError, KeyError, zipfile.BadZipFile) as exc:
        raise IngestionError(f"Failed to read {name or 'upload'}: {exc}") from exc

    out: dict[str, list[dict[str, Any]]] = {}
    for sheet_name, grid in sheets.items():
        out[str(sheet_name)] = grid_to_records(grid)
        logger.debug(f"Read sheet '{sheet_name}': {len(out[str(sheet_name)])} rows")
    return out
