"""Controlled vocabularies for wine varieties and brands.

Both normalisers map noisy free text onto small closed enumerations. Unknown
varieties come back upper-cased instead of being rejected so that downstream
filters can still show them.
"""

from __future__ import annotations

from typing import Any, Sequence

from ..common.parsing import clean_text

# 품종 코드 -> 표시 이름
VARIETY_NAMES: dict[str, str] = {
    "SAB": "Sauvignon Blanc",
    "CHR": "Chardonnay",
    "ROS": "Rose",
    "PIN": "Pinot Noir",
    "PIG": "Pinot Gris",
    "GRU": "Gruner Veltliner",
    "LHS": "Late Harvest Sauvignon",
    "RIES": "Riesling",
}
VARIETY_CODES = tuple(VARIETY_NAMES)

# 브랜드 코드 -> 표시 이름
BRAND_NAMES: dict[str, str] = {
    "JT": "Jules Taylor",
    "TBH": "The Better Half",
    "OTQ": "On the Quiet",
}

# Substring patterns used when scanning free text for a brand. Longer forms are
# listed first within each brand but the scan itself picks the last occurrence.
BRAND_PATTERNS: dict[str, Sequence[str]] = {
    "JT": ("JULES TAYLOR", "JTW", "JT"),
    "TBH": ("THE BETTER HALF", "BETTER HALF", "TBH", "BH"),
    "OTQ": ("ON THE QUIET", "OTQ"),
}

# Filter option values used by the dashboard for each brand.
BRAND_FILTER_CODES: dict[str, str] = {"JT": "jtw", "TBH": "tbh", "OTQ": "otq"}

# Synonym rules evaluated in order after exact/containment matching.
# Each entry is (required substrings (any), excluded substrings, code).
_VARIETY_SYNONYMS: tuple[tuple[Sequence[str], Sequence[str], str], ...] = (
    (("SAUVIGNON BLANC", "SAUV BLANC", "SAUVIGNON"), ("LATE HARVEST",), "SAB"),
    (("LATE HARVEST",), (), "LHS"),
    (("PINOT GRIS", "PINOT GRIGIO", "GRIGIO"), (), "PIG"),
    (("PINOT",), (), "PIN"),
    (("CHARD",), (), "CHR"),
    (("ROSÉ", "ROSE"), (), "ROS"),
    (("GRÜNER", "GRUNER", "VELTLINER"), (), "GRU"),
    (("RIESLING",), (), "RIES"),
)


def normalize_variety_code(value: Any) -> str:
    """Map free text onto one of the fixed variety codes.

    Order: exact code, exact full name, containment either way against the
    full names, then the synonym rules. Unmatched text is returned upper-cased.
    """

    text = clean_text(value)
    if not text:
        return ""
    upper = " ".join(text.upper().split())

    if upper in VARIETY_NAMES:
        return upper
    if upper == "ROSE":
        return "ROS"

    for code, name in VARIETY_NAMES.items():
        if upper == name.upper():
            return code

    # Longest names first so "LATE HARVEST SAUVIGNON" is not read as sauvignon.
    for code, name in sorted(VARIETY_NAMES.items(), key=lambda item: len(item[1]), reverse=True):
        if name.upper() in upper:
            return code
    if len(upper) > 3:
        for code, name in VARIETY_NAMES.items():
            if upper in name.upper():
                return code

    for needles, excluded, code in _VARIETY_SYNONYMS:
        if any(token in upper for token in excluded):
            continue
        if any(token in upper for token in needles):
            return code

    return upper


def variety_display_name(code: str) -> str:
    return VARIETY_NAMES.get(str(code or "").upper(), str(code or ""))


def brand_display_name(code: str) -> str:
    return BRAND_NAMES.get(str(code or "").upper(), "")


def detect_brand_code(value: Any) -> str:
    """Find the brand mentioned in *value*; the last occurrence in the text wins.

    Short patterns only count when they stand as a whole word so that "BH"
    inside an unrelated token does not register.
    """

    upper = f" {clean_text(value).upper()} "
    if not upper.strip():
        return ""

    best_code = ""
    best_index = -1
    for code, patterns in BRAND_PATTERNS.items():
        for pattern in patterns:
            needle = pattern if len(pattern) > 3 else f" {pattern} "
            haystack = upper if len(pattern) > 3 else _word_spaced(upper)
            index = haystack.rfind(needle)
            if index > best_index:
                best_index = index
                best_code = code
    return best_code


def _word_spaced(text: str) -> str:
    """Replace separators with spaces so short tokens can be matched as whole words."""

    return "".join(ch if ch.isalnum() else " " for ch in text)


def product_display_name(brand_code: str, variety_code: str, fallback: str = "") -> str:
    """Reconstruct a human readable product name from brand and variety."""

    parts = [part for part in (brand_display_name(brand_code), variety_display_name(variety_code)) if part]
    if parts:
        return " ".join(parts)
    return fallback
