"""
Catalog

Loads the bundled inventory dataset once and exposes read-only access to it.
Records stay raw (untrusted dicts); normalization happens on demand.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from car_navigator.makers import canonical_maker
from car_navigator.models import QueryCriteria, Vehicle
from car_navigator.normalizer import clean_text, normalize
from car_navigator.pipeline_logger import log_error, log_pipeline
from car_navigator.query_engine import filter_records, search
from car_navigator.sampling import sample


DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "catalog.json"


class CatalogError(Exception):
    """The bundled dataset could not be read."""


def _extract_docs(payload: Any) -> list:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        response = payload.get("response")
        if isinstance(response, Mapping) and isinstance(response.get("docs"), list):
            return response["docs"]
        if isinstance(payload.get("docs"), list):
            return payload["docs"]
    raise CatalogError("Catalog payload has no record list")


class Catalog:
    """Immutable, in-memory collection of raw inventory records."""

    def __init__(self, records):
        self._records: tuple = tuple(records)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Catalog":
        """Read the catalog JSON (``{"response": {"docs": [...]}}`` or a list)."""
        catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
        try:
            with catalog_path.open(encoding="utf-8") as fh:
                payload = json.load(fh)
        except (OSError, ValueError) as e:
            log_error("CATALOG", f"Failed to load catalog from {catalog_path}", e)
            raise CatalogError(f"Cannot read catalog {catalog_path}: {e}") from e

        catalog = cls(_extract_docs(payload))
        log_pipeline("CATALOG", "Catalog loaded", {"path": str(catalog_path), "records": len(catalog)})
        return catalog

    @property
    def records(self) -> tuple:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def vehicles(self) -> list[Vehicle]:
        return [normalize(record) for record in self._records]

    def search(self, criteria: Optional[QueryCriteria] = None) -> list[Vehicle]:
        return search(self._records, criteria)

    def sample(self, count: int) -> list[Vehicle]:
        return sample(self._records, count)

    # ── Listing helpers (search form dropdowns) ───────────────────

    def unique_makers(self) -> list[str]:
        makers = {
            clean_text(record.get("maker_name"))
            for record in self._records
            if isinstance(record, Mapping)
        }
        return sorted(m for m in makers if m)

    def models_by_maker(self, maker: str) -> list[str]:
        records = filter_records(self._records, QueryCriteria(maker=canonical_maker(maker)))
        models = {clean_text(record.get("car_model_name")) for record in records}
        return sorted(m for m in models if m)

    def by_maker(self, maker: str) -> list[Vehicle]:
        return self.search(QueryCriteria(maker=maker))

    def by_price_range(self, min_price: float, max_price: float) -> list[Vehicle]:
        return self.search(QueryCriteria(min_price=min_price, max_price=max_price))

    def by_year(self, min_year: int, max_year: Optional[int] = None) -> list[Vehicle]:
        return self.search(QueryCriteria(min_year=min_year, max_year=max_year))
