from car_navigator.models import QueryCriteria
from car_navigator.normalizer import normalize
from car_navigator.query_engine import filter_records, search

from conftest import FIT, PRIUS, SERENA


def names(vehicles):
    return [v.name for v in vehicles]


def test_scenario_maker_and_price_filters(raw_records):
    assert names(search(raw_records, QueryCriteria(maker="Toyota"))) == ["トヨタ プリウス S"]
    assert names(search(raw_records, QueryCriteria(max_price=100))) == ["ホンダ フィット"]


def test_maker_matching_accepts_native_and_latin_aliases(raw_records):
    for maker in ("トヨタ", "toyota", "TOYOTA"):
        assert names(search(raw_records, QueryCriteria(maker=maker))) == ["トヨタ プリウス S"]
    assert search(raw_records, QueryCriteria(maker="BMW")) == []


def test_search_is_conjunctive_and_exact(raw_records):
    assert search(raw_records, QueryCriteria(maker="トヨタ", max_price=150)) == []
    assert names(search(raw_records, QueryCriteria(maker="トヨタ", max_price=200))) == ["トヨタ プリウス S"]

    criteria = QueryCriteria(min_price=90, max_price=180)
    expected = [normalize(r) for r in raw_records if 90 <= normalize(r).price <= 180]
    assert search(raw_records, criteria) == expected
    assert names(expected) == ["トヨタ プリウス S", "ホンダ フィット"]


def test_bounds_are_inclusive(raw_records):
    assert names(search(raw_records, QueryCriteria(min_year=2019, max_year=2019))) == ["トヨタ プリウス S"]
    assert names(search(raw_records, QueryCriteria(max_mileage=42000))) == ["トヨタ プリウス S", "日産 セレナ"]
    assert names(search(raw_records, QueryCriteria(min_price=250.5))) == ["日産 セレナ"]


def test_model_and_body_type_filters(raw_records):
    assert names(search(raw_records, QueryCriteria(model="フィット"))) == ["ホンダ フィット"]
    assert names(search(raw_records, QueryCriteria(body_type="ミニバン"))) == ["日産 セレナ"]
    assert names(search(raw_records, QueryCriteria(body_type="minivan"))) == ["日産 セレナ"]


def test_results_keep_catalog_order():
    records = [dict(SERENA), dict(FIT), dict(PRIUS)]
    assert names(search(records, QueryCriteria(min_year=2000))) == [
        "日産 セレナ",
        "ホンダ フィット",
        "トヨタ プリウス S",
    ]


def test_empty_criteria_returns_whole_catalog(raw_records):
    assert search(raw_records, QueryCriteria()) == [normalize(r) for r in raw_records]
    assert len(filter_records(raw_records, QueryCriteria())) == 3


def test_records_with_unparseable_price_count_as_zero(raw_records):
    broken = dict(FIT, total_price_show="応談", car_model_name="フィット応談")
    result = search(raw_records + [broken], QueryCriteria(max_price=0))
    assert names(result) == ["ホンダ フィット応談"]


def test_blank_text_criteria_are_no_constraint(raw_records):
    criteria = QueryCriteria(maker="", model="  ", body_type="", max_price=100)
    assert criteria.constraints() == {"max_price": 100}
    assert names(search(raw_records, criteria)) == ["ホンダ フィット"]
    assert QueryCriteria(maker="").is_empty()
