"""
제품 설명(SKU) 파서

"JT 22 SAB AU/B 12pck 750ml" 같은 자유 형식 설명 문자열에서
브랜드, 빈티지, 품종, 시장, 케이스 규격, 병 용량, 팩 수량을 추출합니다.
각 필드는 서로 독립적으로 해석되며, 파서는 예외를 발생시키지 않습니다.
찾지 못한 필드는 빈 문자열 또는 None 으로 표현됩니다.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from market_alias import normalize_market_value

from ..common.parsing import clean_text, full_year
from .vocabulary import BRAND_NAMES, VARIETY_CODES, VARIETY_NAMES

# 설명 문자열 안에서 인정하는 브랜드 토큰 (약어/오기 포함)
BRAND_TOKEN_ALIASES: dict[str, str] = {
    "JT": "JT",
    "JTW": "JT",
    "TBH": "TBH",
    "BH": "TBH",
    "OTQ": "OTQ",
}

# 시장 토큰 (뒤에서부터 스캔하여 처음 발견되는 값이 우선)
MARKET_TOKENS = frozenset(
    {
        "US", "USA", "NZ", "NZL", "ROW", "KO", "GR", "UK", "C/S", "PHI", "UEA", "SG",
        "TAI", "POL", "HK", "MAL", "CA", "NE", "TH", "DE", "JPN", "JP", "IRE", "IE",
        "AU/B", "AU/C", "AU-B", "AU-C",
    }
)

CASE_SIZE_NAMES = {"6PCK": "6 pack", "12PCK": "12 pack", "SINGLE": "Single"}
BOTTLE_VOLUME_NAMES = {"1500": "Magnum", "375": "Demi", "750": "Regular"}

# 품종 텍스트 폴백 (공백 제거 문자열 기준, 순서대로 평가)
_VARIETY_TEXT_FALLBACK: tuple[tuple[tuple[str, ...], str], ...] = (
    (("SAUVIGNON",), "SAB"),
    (("CHARD",), "CHR"),
    (("GRUNER", "VELTLINER"), "GRU"),
    (("LATEHARVEST",), "LHS"),
    (("RIESLING",), "RIES"),
    (("PINOTGRIS", "GRIGIO"), "PIG"),
    (("PINOT",), "PIN"),
    (("ROSE", "ROSÉ"), "ROS"),
)

_PACK_PATTERN = re.compile(r"(?<![\dA-Z])/?(\d{1,2})\s*(?:PCK|PK|PACK|P)\b")
_MULTIPLIER_PATTERN = re.compile(r"(?<!\d)(\d{1,2})\s*X\s*\d{3,4}\s*ML\b")
_VOLUME_PATTERN = re.compile(r"(?<!\d)(\d{3,4})\s*ML\b")
_TOKEN_SPLIT = re.compile(r"[/,]")

# 케이스 환산: 6팩은 12팩 케이스의 절반
HALF_CASE_PACK = 6


@dataclass(frozen=True)
class ProductDescriptor:
    """
    설명 문자열을 해석한 결과.

    사람이 읽는 이름(brand, variety, case_size, bottle_volume)과
    기계용 코드(*_code)를 함께 보관합니다. full_descriptor 만 항상 채워집니다.
    """

    full_descriptor: str
    brand: str = ""
    brand_code: str = ""
    vintage: str = ""
    vintage_code: str = ""
    variety: str = ""
    variety_code: str = ""
    market: str = ""
    market_code: str = ""
    case_size: str = ""
    case_size_code: str = ""
    bottle_volume: str = ""
    bottle_volume_code: str = ""
    pack_bottles: Optional[int] = None


def tokenize_descriptor(text: str) -> list[str]:
    """공백으로 나눈 뒤 '/' 와 ',' 로 한 번 더 분리합니다."""

    tokens: list[str] = []
    for raw in text.upper().split():
        # AU/B 같은 복합 시장 토큰은 분리 전에도 후보로 남겨둡니다.
        if raw in MARKET_TOKENS and _TOKEN_SPLIT.search(raw):
            tokens.append(raw)
            continue
        tokens.extend(part.strip() for part in _TOKEN_SPLIT.split(raw) if part.strip())
    return tokens


def _resolve_brand(tokens: list[str]) -> str:
    for token in tokens:
        if token in BRAND_TOKEN_ALIASES:
            return BRAND_TOKEN_ALIASES[token]
    return ""


def _resolve_vintage(tokens: list[str]) -> str:
    for token in tokens:
        if re.fullmatch(r"\d{2}", token):
            return token
        if re.fullmatch(r"\d{4}", token):
            return token[2:]
    return ""


def _resolve_variety(tokens: list[str], packed: str) -> str:
    # ========================================
    # 1단계: 코드 토큰 정확 일치
    # ========================================
    for token in tokens:
        if token in VARIETY_CODES:
            return token
        if token == "ROSE":
            return "ROS"

    # ========================================
    # 2단계: 2~3개 연속 토큰을 포함한 전체 이름 일치
    # ========================================
    names_by_length = sorted(VARIETY_NAMES.items(), key=lambda item: len(item[1]), reverse=True)
    for width in (3, 2, 1):
        for start in range(len(tokens) - width + 1):
            window = " ".join(tokens[start:start + width])
            for code, name in names_by_length:
                if window == name.upper():
                    return code

    # ========================================
    # 3단계: 부분 문자열 폴백
    # ========================================
    for needles, code in _VARIETY_TEXT_FALLBACK:
        if any(needle in packed for needle in needles):
            return code
    return ""


def _resolve_market_token(tokens: list[str]) -> str:
    for token in reversed(tokens):
        if token in MARKET_TOKENS:
            return token
    return ""


def _resolve_pack(upper: str, units: Optional[str]) -> Optional[int]:
    match = _PACK_PATTERN.search(upper)
    if match:
        return int(match.group(1))
    match = _MULTIPLIER_PATTERN.search(upper)
    if match:
        return int(match.group(1))
    if "SINGLE" in upper:
        return 1
    if str(units or "").strip().lower() == "cases":
        return 12
    return None


def _resolve_volume(upper: str) -> str:
    match = _VOLUME_PATTERN.search(upper)
    if match:
        return match.group(1)
    if "MAGNUM" in upper:
        return "1500"
    if "DEMI" in upper:
        return "375"
    return "750"


def parse_descriptor(value: Any, *, units: Optional[str] = None) -> ProductDescriptor:
    """
    자유 형식 제품 설명을 :class:`ProductDescriptor` 로 해석합니다.

    Args:
        value: 설명 문자열 (예: "JT 22 SAB AU/B 12pck 750ml")
        units: 원본 수량 단위. "cases" 이면 팩 정보가 없을 때 12팩으로 간주

    Returns:
        해석 결과. 입력이 비어 있으면 모든 필드가 비어 있는 디스크립터

    Examples:
        >>> d = parse_descriptor("JT 22 SAB AU/B 6pck")
        >>> (d.brand_code, d.vintage, d.variety_code, d.market_code, d.pack_bottles)
        ('JT', '2022', 'SAB', 'AU/B', 6)
    """
    text = clean_text(value)
    if not text:
        return ProductDescriptor(full_descriptor="")

    tokens = tokenize_descriptor(text)
    packed = "".join(text.upper().split())

    brand_code = _resolve_brand(tokens)
    vintage_code = _resolve_vintage(tokens)
    variety_code = _resolve_variety(tokens, packed)
    market_token = _resolve_market_token(tokens)
    pack_bottles = _resolve_pack(text.upper(), units)
    volume_code = _resolve_volume(text.upper())

    case_size_code = {6: "6PCK", 12: "12PCK", 1: "SINGLE"}.get(pack_bottles or 0, "")

    return ProductDescriptor(
        full_descriptor=text,
        brand=BRAND_NAMES.get(brand_code, brand_code),
        brand_code=brand_code,
        vintage=full_year(vintage_code) if vintage_code else "",
        vintage_code=vintage_code,
        variety=VARIETY_NAMES.get(variety_code, variety_code),
        variety_code=variety_code,
        market=normalize_market_value(market_token) if market_token else "",
        market_code=market_token,
        case_size=CASE_SIZE_NAMES.get(case_size_code, case_size_code),
        case_size_code=case_size_code,
        bottle_volume=BOTTLE_VOLUME_NAMES.get(volume_code, f"{volume_code}ml"),
        bottle_volume_code=volume_code,
        pack_bottles=pack_bottles,
    )


def to_case_equivalents(quantity: float, pack_bottles: Optional[int]) -> float:
    """12팩 케이스 환산 수량. 6팩은 절반, 그 외(12팩/미상)는 그대로."""

    if pack_bottles == HALF_CASE_PACK:
        return quantity / 2
    return quantity
