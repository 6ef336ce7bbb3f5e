"""Header lookup helpers shared by the sheet strategies."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..common.parsing import clean_text


def build_column_lookup(columns: Iterable[object]) -> dict[str, str]:
    """Create a mapping of normalised column names to the original labels."""

    lookup: dict[str, str] = {}
    for col in columns:
        name = str(col).strip()
        if not name:
            continue
        lookup.setdefault(name.casefold(), str(col))
    return lookup


def find_column(lookup: dict[str, str], aliases: Sequence[str]) -> Optional[str]:
    """Return the first matching column for *aliases* using *lookup*."""

    for alias in aliases:
        key = str(alias).strip().casefold()
        if not key:
            continue
        found = lookup.get(key)
        if found is not None:
            return found

    # Fallback to partial matches so inputs like ``Available Stock`` match
    # ``Available`` and vice versa.
    for alias in aliases:
        key = str(alias).strip().casefold()
        if not key:
            continue
        for candidate_key, original in lookup.items():
            if key in candidate_key or candidate_key in key:
                return original
    return None


def _word_parts(text: str) -> list[str]:
    return [part for part in re.split(r"[^a-z0-9]+", text) if part]


def fuzzy_find_column(headers: Mapping[str, Any], candidates: Sequence[str]) -> Optional[str]:
    """Find a key whose header label matches one of *candidates*.

    *headers* maps record keys to the header text found for them (for
    key-as-header rows both are the same). Candidates are tried in priority
    order and, per candidate, matches are ranked: exact label, label contains
    the candidate (whole word for short candidates), candidate contains the
    label, then shared word parts. Keys are searched last.
    """

    labels = {key: clean_text(label).casefold() for key, label in headers.items()}
    labels = {key: label for key, label in labels.items() if label}

    for candidate in candidates:
        term = candidate.casefold()
        for key, label in labels.items():
            if label == term:
                return key
        for key, label in labels.items():
            if len(term) <= 5:
                if re.search(rf"(^|[^a-z0-9]){re.escape(term)}($|[^a-z0-9])", label):
                    return key
            elif term in label:
                return key
        for key, label in labels.items():
            if len(label) >= 3 and label in term:
                return key
        term_parts = set(_word_parts(term))
        for key, label in labels.items():
            label_parts = _word_parts(label)
            if label_parts and term_parts and all(part in term_parts for part in label_parts):
                return key

    lookup = build_column_lookup(headers.keys())
    for candidate in candidates:
        found = lookup.get(candidate.casefold())
        if found is not None:
            return found
    return None
