"""Utilities for normalising market (country) codes across the engine."""

from __future__ import annotations

from typing import Any, Iterable

import math
import pandas as pd

# Centralised alias mapping so that all inputs converge to a single canonical
# market code. Keys are upper-case; extend this dictionary when new aliases
# appear in upstream reports.
MARKET_ALIAS: dict[str, str] = {
    # United States
    "US": "usa",
    "USA": "usa",
    "UNITED STATES": "usa",
    "UNITED STATES OF AMERICA": "usa",
    # Australia (national, then the two distributor books)
    "AU": "au",
    "AUS": "au",
    "AUSTRALIA": "au",
    "AU-B": "au-b",
    "AUB": "au-b",
    "AU/B": "au-b",
    "AU-C": "au-c",
    "AUC": "au-c",
    "AU/C": "au-c",
    # New Zealand
    "NZ": "nzl",
    "NZL": "nzl",
    "NEW ZEALAND": "nzl",
    # Japan
    "JP": "jap",
    "JPN": "jap",
    "JAPAN": "jap",
    # Denmark
    "DK": "den",
    "DNK": "den",
    "DENMARK": "den",
    "DE": "den",
    # Poland
    "PL": "pol",
    "POL": "pol",
    "POLAND": "pol",
    # Ireland
    "IE": "ire",
    "IRL": "ire",
    "IRE": "ire",
    "IRELAND": "ire",
    # Two-letter export books
    "KO": "ko",
    "ROW": "row",
    "GR": "gr",
    "UK": "uk",
    "C/S": "cs",
    "CLEANSKIN": "cs",
    "PHI": "phi",
    "UEA": "uea",
    "SG": "sg",
    "TAI": "tai",
    "HK": "hk",
    "MAL": "mal",
    "CA": "ca",
    "NE": "ne",
    "TH": "th",
}

# Markets listed first in option lists; anything else follows alphabetically.
MARKET_PRIORITY = ("usa", "au-b", "au-c", "nzl", "ire")

# The AU-C book is always offered even before any AU-C sheet has been loaded.
ALWAYS_AVAILABLE_MARKETS = ("au-c",)

_PLACEHOLDERS = {"", "nan", "none", "null", "<na>"}
_SEGMENT_SEPARATORS = ("-", "_", "/")

# Longest first so that "AU-B" wins over "AU" during partial matching.
_ALIASES_BY_LENGTH = sorted(MARKET_ALIAS.items(), key=lambda item: len(item[0]), reverse=True)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _segment_match(text: str) -> str | None:
    """Match an alias that appears as a whole separator-bounded segment."""

    for alias, canonical in _ALIASES_BY_LENGTH:
        for sep in _SEGMENT_SEPARATORS:
            if text.startswith(alias + sep) or text.endswith(sep + alias):
                return canonical
    return None


def normalize_market_value(value: Any) -> str:
    """Normalise a single market label to its canonical code.

    Resolution order: exact alias, then space separated parts scanned from the
    last one backwards, then separator-bounded partial matches. Unknown labels
    degrade to a lower-case copy without hyphens. Empty input yields ``""``.
    """

    if _is_missing(value):
        return ""

    text = str(value).strip()
    if text.casefold() in _PLACEHOLDERS:
        return ""

    upper = text.upper()
    exact = MARKET_ALIAS.get(upper)
    if exact:
        return exact

    parts = upper.split()
    if len(parts) > 1:
        for part in reversed(parts):
            if part in MARKET_ALIAS:
                return MARKET_ALIAS[part]

    partial = _segment_match(upper)
    if partial:
        return partial

    return text.lower().replace("-", "")


def normalize_market_series(series: pd.Series) -> pd.Series:
    """Return *series* with every value mapped through :func:`normalize_market_value`."""

    return series.map(normalize_market_value).astype(str)


def available_markets(values: Iterable[Any]) -> list[str]:
    """Return the distinct market codes present in *values* in display order.

    ``au-c`` is always part of the result, whether or not any row carries it.
    """

    codes = {normalize_market_value(value) for value in values}
    codes.discard("")
    codes.update(ALWAYS_AVAILABLE_MARKETS)

    ordered = [code for code in MARKET_PRIORITY if code in codes]
    ordered.extend(sorted(code for code in codes if code not in MARKET_PRIORITY))
    return ordered
