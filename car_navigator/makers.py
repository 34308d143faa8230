"""
Maker and body-type normalization utilities.

Normalizes maker and body-type labels coming from free text, search forms and
the catalog into a stable canonical set (the catalog's own Japanese names).
"""

from __future__ import annotations

import unicodedata


# Ordered: free-text detection takes the first maker whose alias appears.
MAKER_ALIASES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("トヨタ", ("トヨタ", "toyota")),
    ("ホンダ", ("ホンダ", "honda")),
    ("日産", ("日産", "ニッサン", "nissan")),
    ("スズキ", ("スズキ", "suzuki")),
    ("マツダ", ("マツダ", "mazda")),
    ("ダイハツ", ("ダイハツ", "daihatsu")),
    ("スバル", ("スバル", "subaru")),
    ("三菱", ("三菱", "ミツビシ", "mitsubishi")),
    ("レクサス", ("レクサス", "lexus")),
)

BODY_TYPE_ALIASES = {
    "ミニバン・ワンボックス": "ミニバン",
    "suv・クロスカントリー": "SUV",
    "suv": "SUV",
    "クロカン": "SUV",
    "minivan": "ミニバン",
    "sedan": "セダン",
    "hatchback": "ハッチバック",
    "コンパクトカー": "コンパクト",
    "compact": "コンパクト",
    "軽自動車": "軽自動車",
    "kei": "軽自動車",
    "wagon": "ステーションワゴン",
    "ワゴン": "ステーションワゴン",
}


def _fold(value: str | None) -> str:
    return unicodedata.normalize("NFKC", value or "").strip().lower()


def canonical_maker(raw_maker: str | None) -> str:
    """
    Map a maker label to the catalog's maker name.

    Unknown labels are returned stripped but otherwise untouched so that they
    still match catalog entries exactly.
    """
    value = _fold(raw_maker)
    if not value:
        return ""
    for canonical, aliases in MAKER_ALIASES:
        if value == _fold(canonical) or value in aliases:
            return canonical
    return (raw_maker or "").strip()


def detect_maker(text: str | None) -> str | None:
    """First known maker mentioned anywhere in ``text`` (substring match)."""
    value = _fold(text)
    if not value:
        return None
    for canonical, aliases in MAKER_ALIASES:
        if any(alias in value for alias in aliases):
            return canonical
    return None


def canonical_body_type(raw_body_type: str | None) -> str:
    value = _fold(raw_body_type)
    if not value:
        return ""
    return BODY_TYPE_ALIASES.get(value, (raw_body_type or "").strip())
