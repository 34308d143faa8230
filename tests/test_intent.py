from car_navigator.intent import RECOMMEND, UNRESOLVED, extract, matched_rules
from car_navigator.models import QueryCriteria, RecommendSignal


def test_maker_and_price_ceiling_are_combined():
    result = extract("ホンダで100万円以内")
    assert result == QueryCriteria(maker="ホンダ", max_price=100)


def test_latin_maker_maps_to_catalog_name():
    assert extract("Toyota がいい") == QueryCriteria(maker="トヨタ")
    assert extract("NISSAN 2018年以降") == QueryCriteria(maker="日産", min_year=2018)


def test_price_ceiling_accepts_ika_and_full_width_digits():
    assert extract("予算は１５０万円以下") == QueryCriteria(max_price=150)


def test_year_floor():
    assert extract("2020年以降の車") == QueryCriteria(min_year=2020)


def test_recommendation_wins_over_other_signals():
    assert extract("おすすめの車は？") is RECOMMEND
    assert isinstance(extract("人気のトヨタで100万円以内"), RecommendSignal)
    assert extract("popular cars") is RECOMMEND


def test_unextractable_text_is_unresolved():
    assert extract("燃費の良いファミリーカー") is UNRESOLVED
    assert extract("こんにちは") is UNRESOLVED
    assert extract("") is UNRESOLVED
    assert extract("   ") is UNRESOLVED


def test_matched_rules_lists_fired_rules_in_order():
    assert matched_rules("ホンダで100万円以内") == ["maker", "price_ceiling"]
    assert matched_rules("燃費") == []


def test_price_ceiling_ignores_thousands_separators():
    assert extract("1,000万円以内") == QueryCriteria(max_price=1000)
    assert extract("トヨタで１，２００万円以下") == QueryCriteria(maker="トヨタ", max_price=1200)
