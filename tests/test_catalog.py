import json

import pytest

from car_navigator.catalog import Catalog, CatalogError
from car_navigator.models import QueryCriteria


def test_bundled_catalog_loads_and_normalizes():
    catalog = Catalog.load()

    assert len(catalog) == 12
    vehicles = catalog.vehicles()
    assert all(v.name and v.image_url for v in vehicles)
    assert "ホンダ" in catalog.unique_makers()


def test_bundled_catalog_scenario_queries():
    catalog = Catalog.load()

    toyota = catalog.search(QueryCriteria(maker="Toyota"))
    assert toyota and all(v.name.startswith("トヨタ") for v in toyota)

    cheap_honda = catalog.search(QueryCriteria(maker="ホンダ", max_price=100))
    assert [v.price for v in cheap_honda] == [70.7]


def test_load_accepts_plain_list_and_docs_wrapper(tmp_path, raw_records):
    plain = tmp_path / "plain.json"
    plain.write_text(json.dumps(raw_records, ensure_ascii=False), encoding="utf-8")
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"docs": raw_records}, ensure_ascii=False), encoding="utf-8")

    assert len(Catalog.load(plain)) == 3
    assert len(Catalog.load(str(wrapped))) == 3


def test_load_raises_catalog_error_for_missing_or_broken_file(tmp_path):
    with pytest.raises(CatalogError):
        Catalog.load(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogError):
        Catalog.load(broken)

    no_docs = tmp_path / "no_docs.json"
    no_docs.write_text(json.dumps({"response": {}}), encoding="utf-8")
    with pytest.raises(CatalogError):
        Catalog.load(no_docs)


def test_listing_helpers(catalog):
    assert catalog.unique_makers() == sorted(["トヨタ", "ホンダ", "日産"])
    assert catalog.models_by_maker("honda") == ["フィット"]
    assert catalog.models_by_maker("BMW") == []
    assert [v.name for v in catalog.by_maker("日産")] == ["日産 セレナ"]
    assert [v.name for v in catalog.by_price_range(0, 100)] == ["ホンダ フィット"]
    assert [v.name for v in catalog.by_year(2019)] == ["トヨタ プリウス S", "日産 セレナ"]


def test_catalog_is_immutable_snapshot(raw_records):
    catalog = Catalog(raw_records)
    raw_records.clear()
    assert len(catalog) == 3
    assert isinstance(catalog.records, tuple)
