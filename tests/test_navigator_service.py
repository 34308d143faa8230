import asyncio
from typing import Any

import pytest

from backend.services import navigator_service
from backend.services.navigator_service import NavigatorService
from car_navigator.generative import BackendError
from car_navigator.models import QueryCriteria
from car_navigator.normalizer import normalize
from car_navigator.orchestrator import FALLBACK_MESSAGE
from car_navigator.query_engine import NO_CRITERIA_MESSAGE, NO_MATCH_MESSAGE

from conftest import FIT, FakeBackend, backend_cars_payload


def _run(coro: Any):
    return asyncio.run(coro)


@pytest.fixture
def service(catalog, monkeypatch):
    monkeypatch.setattr(navigator_service.settings, "resolution_cache_enabled", False)
    monkeypatch.setattr(navigator_service.settings, "search_result_limit", 2)
    return NavigatorService(catalog=catalog, backend=FakeBackend(response=backend_cars_payload()))


def test_properties_require_initialization(catalog):
    service = NavigatorService(catalog=catalog, backend=FakeBackend())
    with pytest.raises(RuntimeError):
        service.resolver


def test_chat_local_result_marks_favorites(service):
    _run(service.initialize())
    service.sessions.get("s1").toggle_favorite(normalize(FIT))

    result = _run(service.chat("100万円以内", session_id="s1"))

    assert result["success"] is True
    assert result["session_id"] == "s1"
    assert [v.name for v in result["vehicles"]] == ["ホンダ フィット"]
    assert result["vehicles"][0].is_favorite is True
    assert result["metadata"]["source"] == "local"
    assert result["metadata"]["total_results"] == 1
    assert service.sessions.get("s1").search_history == ["100万円以内"]


def test_chat_generates_session_id(service):
    result = _run(service.chat("トヨタ"))
    assert result["session_id"]
    assert result["session_id"] in service.sessions


def test_chat_fallback_is_reported_unsuccessful(catalog, monkeypatch):
    monkeypatch.setattr(navigator_service.settings, "resolution_cache_enabled", False)
    service = NavigatorService(catalog=catalog, backend=FakeBackend(error=BackendError("x")))

    result = _run(service.chat("燃費の良い車", session_id="s1"))

    assert result["success"] is False
    assert result["response"] == FALLBACK_MESSAGE
    assert len(result["quick_replies"]) == 2
    assert result["metadata"]["source"] == "fallback"


def test_search_rejects_empty_criteria(service):
    result = _run(service.search(QueryCriteria()))
    assert result == {"success": False, "message": NO_CRITERIA_MESSAGE, "vehicles": [], "total_results": 0}


def test_search_reports_no_match(service):
    result = _run(service.search(QueryCriteria(maker="スバル")))
    assert result["success"] is True
    assert result["message"] == NO_MATCH_MESSAGE
    assert result["vehicles"] == []


def test_search_caps_vehicles_but_reports_total(service):
    result = _run(service.search(QueryCriteria(min_year=2000)))
    assert result["message"] == "3件の車両が見つかりました。"
    assert result["total_results"] == 3
    assert len(result["vehicles"]) == 2


def test_recommendations_and_listings(service):
    assert len(_run(service.recommendations(count=2))) == 2
    assert _run(service.makers()) == ["トヨタ", "ホンダ", "日産"]
    assert _run(service.models("Honda")) == ["フィット"]


def test_selling_points_delegates_to_backend(service):
    points = _run(service.selling_points(normalize(FIT)))
    assert points == ["燃費が良い", "広い室内", "先進安全装備"]


def test_health_check_reports_catalog(service):
    health = _run(service.health_check())
    assert health["status"] == "ok"
    assert health["detail"]["catalog_records"] == 3
    assert health["detail"]["resolution_cache"] == {"available": False}


def test_health_check_reports_load_failure(monkeypatch, tmp_path):
    monkeypatch.setattr(navigator_service.settings, "catalog_path", str(tmp_path / "missing.json"))
    service = NavigatorService(backend=FakeBackend())

    health = _run(service.health_check())

    assert health["status"] == "error"
    assert "missing.json" in health["error"]


def test_search_treats_blank_form_fields_as_absent(service):
    from backend.api.schemas import SearchRequest

    form = SearchRequest.model_validate({"maker": "", "model": "", "maxPrice": 100})
    result = _run(service.search(form.criteria()))

    assert result["success"] is True
    assert [v.name for v in result["vehicles"]] == ["ホンダ フィット"]


def test_search_with_only_blank_fields_asks_for_criteria(service):
    from backend.api.schemas import SearchRequest

    for payload in ({"maker": ""}, {"maker": "  ", "bodyType": ""}):
        result = _run(service.search(SearchRequest.model_validate(payload).criteria()))
        assert result["success"] is False
        assert result["message"] == NO_CRITERIA_MESSAGE


def test_anonymous_chats_do_not_grow_sessions_without_bound(catalog, monkeypatch):
    monkeypatch.setattr(navigator_service.settings, "resolution_cache_enabled", False)
    monkeypatch.setattr(navigator_service.settings, "max_sessions", 3)
    service = NavigatorService(catalog=catalog, backend=FakeBackend())

    for _ in range(10):
        _run(service.chat("トヨタ"))

    assert len(service.sessions) == 3
