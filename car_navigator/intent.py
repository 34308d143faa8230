"""
Intent Extractor

Cheap, best-effort parsing of free text into structured criteria. This is a
fast path in front of the generative backend, not a language-understanding
layer: no negation handling, no unit disambiguation, one maker at most.

The extractor is an ordered tuple of independent rules. Each rule looks at
the folded text and contributes optional criteria fields to a single
accumulator; only the recommendation rule can end the cascade early.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from car_navigator.makers import detect_maker
from car_navigator.models import QueryCriteria, RecommendSignal, Unresolved


RECOMMEND_TOKENS = ("おすすめ", "オススメ", "お勧め", "人気", "recommend", "popular")

_RE_PRICE_CEILING = re.compile(r"(\d+)万円以[内下]")
_RE_YEAR_FLOOR = re.compile(r"(\d{4})年以降")

RECOMMEND = RecommendSignal()
UNRESOLVED = Unresolved()

IntentResult = Union[QueryCriteria, RecommendSignal, Unresolved]


@dataclass(frozen=True)
class IntentRule:
    """A named extractor; returns criteria fields, RECOMMEND, or None."""

    name: str
    extract: Callable[[str], Any]


def _fold(text: str) -> str:
    return unicodedata.normalize("NFKC", text or "").lower()


# =============================================================================
# Rules
# =============================================================================


def recommendation_rule(text: str) -> Optional[RecommendSignal]:
    return RECOMMEND if any(token in text for token in RECOMMEND_TOKENS) else None


def maker_rule(text: str) -> Optional[dict]:
    maker = detect_maker(text)
    return {"maker": maker} if maker else None


def price_ceiling_rule(text: str) -> Optional[dict]:
    match = _RE_PRICE_CEILING.search(text.replace(",", ""))
    return {"max_price": int(match.group(1))} if match else None


def year_floor_rule(text: str) -> Optional[dict]:
    match = _RE_YEAR_FLOOR.search(text)
    return {"min_year": int(match.group(1))} if match else None


DEFAULT_RULES: tuple[IntentRule, ...] = (
    IntentRule("recommend", recommendation_rule),
    IntentRule("maker", maker_rule),
    IntentRule("price_ceiling", price_ceiling_rule),
    IntentRule("year_floor", year_floor_rule),
)


# =============================================================================
# Public API
# =============================================================================


def extract(text: str, rules: tuple[IntentRule, ...] = DEFAULT_RULES) -> IntentResult:
    """
    Examples:
        "ホンダで100万円以内"     -> QueryCriteria(maker="ホンダ", max_price=100)
        "おすすめの車を教えて"     -> RecommendSignal
        "燃費の良いファミリーカー" -> Unresolved
    """
    folded = _fold(text)
    if not folded.strip():
        return UNRESOLVED

    fields: dict[str, Any] = {}
    for rule in rules:
        contribution = rule.extract(folded)
        if isinstance(contribution, RecommendSignal):
            return contribution
        if contribution:
            fields.update(contribution)

    if not fields:
        return UNRESOLVED
    return QueryCriteria(**fields)


def matched_rules(text: str, rules: tuple[IntentRule, ...] = DEFAULT_RULES) -> list[str]:
    """Names of the rules that fired (for logging)."""
    folded = _fold(text)
    return [rule.name for rule in rules if rule.extract(folded)]
