"""
Structured Query Engine

Stable, conjunctive filtering of raw catalog records. Every supplied
criterion must hold; bounds are inclusive; catalog order is preserved and the
result is never capped here (callers bound it).
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional

from car_navigator.makers import canonical_body_type, canonical_maker
from car_navigator.models import QueryCriteria, Vehicle
from car_navigator.normalizer import (
    clean_text,
    normalize,
    record_mileage,
    record_price,
    record_year,
)


NO_CRITERIA_MESSAGE = "検索条件を入力してください。"
NO_MATCH_MESSAGE = "条件に合う車両が見つかりませんでした。条件を変えて再度お試しください。"

Predicate = Callable[[Mapping[str, Any]], bool]


def _field(record: Mapping[str, Any], key: str) -> str:
    return clean_text(record.get(key)) or ""


def build_predicates(criteria: QueryCriteria) -> list[Predicate]:
    """One predicate per supplied criterion."""
    predicates: list[Predicate] = []

    if criteria.maker is not None:
        maker = canonical_maker(criteria.maker)
        predicates.append(lambda r: canonical_maker(_field(r, "maker_name")) == maker)
    if criteria.model is not None:
        model = criteria.model.strip()
        predicates.append(lambda r: _field(r, "car_model_name") == model)
    if criteria.min_year is not None:
        min_year = criteria.min_year
        predicates.append(lambda r: record_year(r) >= min_year)
    if criteria.max_year is not None:
        max_year = criteria.max_year
        predicates.append(lambda r: record_year(r) <= max_year)
    if criteria.min_price is not None:
        min_price = criteria.min_price
        predicates.append(lambda r: record_price(r) >= min_price)
    if criteria.max_price is not None:
        max_price = criteria.max_price
        predicates.append(lambda r: record_price(r) <= max_price)
    if criteria.max_mileage is not None:
        max_mileage = criteria.max_mileage
        predicates.append(lambda r: record_mileage(r) <= max_mileage)
    if criteria.body_type is not None:
        body_type = canonical_body_type(criteria.body_type)
        predicates.append(
            lambda r: canonical_body_type(_field(r, "body_type_name")) == body_type
        )

    return predicates


def filter_records(
    records: Iterable[Any],
    criteria: QueryCriteria,
) -> list[Mapping[str, Any]]:
    """Raw records satisfying every criterion, in catalog order."""
    predicates = build_predicates(criteria)
    if not predicates:
        return list(records)
    return [
        record
        for record in records
        if isinstance(record, Mapping) and all(p(record) for p in predicates)
    ]


def search(
    records: Iterable[Any],
    criteria: Optional[QueryCriteria] = None,
) -> list[Vehicle]:
    """
    Filter the catalog and normalize the matches.

    An empty ``QueryCriteria`` applies no constraint and returns the whole
    catalog; form and chat entry points reject that case before calling here.
    """
    criteria = criteria or QueryCriteria()
    return [normalize(record) for record in filter_records(records, criteria)]
