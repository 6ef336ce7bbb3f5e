"""Sheet-name sniffing and strategy dispatch.

All keyword rules that pick a layout live here so they can be tested without
running any strategy.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional, Sequence

import pandas as pd

from ..common.parsing import clean_text
from ..domain.exceptions import SheetStructureError
from ..domain.models import empty_stock_frame
from .strategies import (
    BANNER_PIVOT,
    CHANNEL_SALES,
    GENERIC,
    STATE_MONTHLY_MATRIX,
    STRATEGIES,
    SUPPLIER_RANK_REPORT,
    TRANSACTION_CARTONS,
    has_month_matrix_header,
    is_banner_pivot_header,
    is_supplier_rank_header,
    records_from_rows,
)

logger = logging.getLogger(__name__)

# Sheet-name keywords per layout, compared as upper-case words with separators
# removed so that "AU-B", "AU B", "au_b" and "AUB" are equivalent. Order
# matters: compound AU books are checked before anything broader.
SHEET_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (TRANSACTION_CARTONS, ("AUB",)),
    (BANNER_PIVOT, ("AUC",)),
    (CHANNEL_SALES, ("NZL", "NZ", "NEWZEALAND")),
    (STATE_MONTHLY_MATRIX, ("USA", "US")),
    (SUPPLIER_RANK_REPORT, ("IRE", "IRELAND")),
)

# Header markers used when the sheet name says nothing useful.
_CONTENT_MARKERS: tuple[tuple[str, str], ...] = (
    (CHANNEL_SALES, "month sales 9le"),
    (TRANSACTION_CARTONS, "quantity - cartons"),
)


def _name_words(sheet_name: str) -> set[str]:
    """Upper-case words of *sheet_name* plus every adjacent pair joined together."""

    words = [word for word in re.split(r"[^A-Z0-9]+", sheet_name.upper()) if word]
    candidates = set(words)
    candidates.update(a + b for a, b in zip(words, words[1:]))
    candidates.update(a + b + c for a, b, c in zip(words, words[1:], words[2:]))
    return candidates


def layout_from_sheet_name(sheet_name: str) -> Optional[str]:
    """Return the layout tag implied by the sheet name, if any."""

    words = _name_words(clean_text(sheet_name))
    for tag, keywords in SHEET_KEYWORDS:
        if any(keyword in words for keyword in keywords):
            return tag
    return None


def layout_from_content(rows: Sequence[Mapping[str, Any]]) -> Optional[str]:
    """Return a layout tag recognised from header labels, if any."""

    if not rows:
        return None
    keys = list(rows[0].keys())
    labels = {clean_text(key).casefold() for key in keys}
    for tag, marker in _CONTENT_MARKERS:
        if marker in labels:
            return tag
    if is_banner_pivot_header(keys):
        return BANNER_PIVOT
    if is_supplier_rank_header(rows):
        return SUPPLIER_RANK_REPORT
    if has_month_matrix_header(rows):
        return STATE_MONTHLY_MATRIX
    return None


def sniff_layout(sheet_name: str, rows: Any = None) -> str:
    """Pick the layout tag for a sheet; :data:`GENERIC` when nothing matches."""

    by_name = layout_from_sheet_name(sheet_name)
    if by_name is not None:
        return by_name
    by_content = layout_from_content(records_from_rows(rows))
    return by_content or GENERIC


def parse_sheet(rows: Any, sheet_name: str, *, layout: Optional[str] = None) -> pd.DataFrame:
    """Dispatch *rows* to the matching strategy.

    A sheet whose structure cannot be understood yields an empty frame; the
    problem is logged and sibling sheets are unaffected.
    """

    records = records_from_rows(rows)
    tag = layout or sniff_layout(sheet_name, records)
    strategy = STRATEGIES.get(tag, STRATEGIES[GENERIC])
    logger.debug(f"Parsing sheet '{sheet_name}' ({len(records)} rows) as {tag}")
    try:
        frame = strategy(records, sheet_name)
    except SheetStructureError as exc:
        logger.warning(f"Sheet '{sheet_name}' skipped: {exc}")
        return empty_stock_frame()
    logger.debug(f"Sheet '{sheet_name}' produced {len(frame)} canonical records")
    return frame
