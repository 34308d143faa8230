"""
Catalog Normalizer

Turns raw inventory records (untrusted dicts from the bundled dataset) into
canonical ``Vehicle`` objects. ``normalize`` is total: malformed or missing
fields fall back to defaults instead of raising.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Mapping, Optional

from car_navigator.models import Vehicle, VehicleSpecs


UNKNOWN_VEHICLE_NAME = "不明な車両"
DEFAULT_ENGINE_TYPE = "ガソリン"
HYBRID_LABEL = "ハイブリッド"
BASIC_SAFETY = "基本安全装備"
DEFAULT_DOORS = 4
DEFAULT_SEATS = 4
PLACEHOLDER_IMAGE = "https://picsum.photos/seed/{seed}/800/600"

SAFETY_KEYWORDS = ("エアバッグ", "ABS", "横滑り", "衝突")
MAX_SAFETY_ITEMS = 3

_RE_PRICE = re.compile(r"(\d+(?:\.\d+)?)万円")
_RE_YEAR = re.compile(r"^\s*(\d{4})(?!\d)")
_RE_CONTROL = re.compile(r"[\u0000-\u001F\u007F\u200b]")


def fold_text(value: Any) -> str:
    """NFKC-fold (full-width digits -> ASCII) and strip control chars."""
    if value is None:
        return ""
    text = unicodedata.normalize("NFKC", str(value))
    return _RE_CONTROL.sub("", text).strip()


def clean_text(value: Any) -> Optional[str]:
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        return None
    text = fold_text(value)
    return text or None


def parse_price(price_show: Any) -> float:
    """
    Parse a localized price string in 万円.

    Examples:
        "70.7万円" -> 70.7
        "40万円"   -> 40.0
        "" / "ASK" -> 0.0
    """
    if not isinstance(price_show, str) or not price_show:
        return 0.0
    match = _RE_PRICE.search(fold_text(price_show).replace(",", ""))
    return float(match.group(1)) if match else 0.0


def parse_year(value: Any) -> int:
    """Leading 4-digit year, or 0 when it cannot be read."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if 1000 <= value <= 9999 else 0
    if not isinstance(value, str):
        return 0
    match = _RE_YEAR.match(fold_text(value))
    return int(match.group(1)) if match else 0


def _as_non_negative_int(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        return 0
    try:
        number = int(float(str(value).replace(",", "")))
    except (TypeError, ValueError, OverflowError):
        return 0
    return number if number > 0 else 0


def _equipment_names(raw: Mapping[str, Any]) -> list[str]:
    equip = raw.get("equip_names")
    if not isinstance(equip, (list, tuple)):
        return []
    return [str(item) for item in equip if isinstance(item, str)]


# =============================================================================
# Vehicle specs
# =============================================================================


def derive_engine(raw: Mapping[str, Any]) -> str:
    displacement = _as_non_negative_int(raw.get("displacement"))
    engine_type = clean_text(raw.get("engine_type"))
    if engine_type and (HYBRID_LABEL in engine_type or "hybrid" in engine_type.lower()):
        return f"{displacement}cc {HYBRID_LABEL}"
    return f"{displacement}cc {engine_type or DEFAULT_ENGINE_TYPE}"


def derive_size(raw: Mapping[str, Any]) -> str:
    doors = _as_non_negative_int(raw.get("door")) or DEFAULT_DOORS
    seats = _as_non_negative_int(raw.get("person")) or DEFAULT_SEATS
    return f"{doors}ドア・{seats}人乗り"


def derive_safety(raw: Mapping[str, Any]) -> str:
    matches = [
        name
        for name in _equipment_names(raw)
        if any(keyword in name for keyword in SAFETY_KEYWORDS)
    ]
    return ", ".join(matches[:MAX_SAFETY_ITEMS]) or BASIC_SAFETY


def derive_name(raw: Mapping[str, Any]) -> str:
    parts = [
        clean_text(raw.get("maker_name")),
        clean_text(raw.get("car_model_name")),
        clean_text(raw.get("grade1")),
    ]
    name = " ".join(part for part in parts if part)
    return name or UNKNOWN_VEHICLE_NAME


def derive_image_url(raw: Mapping[str, Any]) -> str:
    photos = raw.get("photo_files")
    if isinstance(photos, (list, tuple)):
        for photo in photos:
            url = clean_text(photo)
            if url:
                return url
    seed = clean_text(raw.get("code")) or "default"
    return PLACEHOLDER_IMAGE.format(seed=seed)


# =============================================================================
# Public API
# =============================================================================


def normalize(raw: Any) -> Vehicle:
    """Convert one raw inventory record into a canonical Vehicle."""
    if not isinstance(raw, Mapping):
        raw = {}

    return Vehicle(
        name=derive_name(raw),
        year=parse_year(raw.get("model_year")),
        mileage=_as_non_negative_int(raw.get("mileage")),
        price=parse_price(raw.get("total_price_show")),
        image_url=derive_image_url(raw),
        specs=VehicleSpecs(
            engine=derive_engine(raw),
            size=derive_size(raw),
            safety=derive_safety(raw),
        ),
        is_favorite=False,
    )


def record_price(raw: Any) -> float:
    """Price of a raw record in 万円 (used by the query engine)."""
    if not isinstance(raw, Mapping):
        return 0.0
    return parse_price(raw.get("total_price_show"))


def record_year(raw: Any) -> int:
    if not isinstance(raw, Mapping):
        return 0
    return parse_year(raw.get("model_year"))


def record_mileage(raw: Any) -> int:
    if not isinstance(raw, Mapping):
        return 0
    return _as_non_negative_int(raw.get("mileage"))
