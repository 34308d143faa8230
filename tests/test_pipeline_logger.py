import importlib
import logging

import pytest


def _reload_pipeline_logger(monkeypatch, debug_log: bool):
    monkeypatch.setenv("DEBUG_LOG", "true" if debug_log else "false")
    monkeypatch.setenv("DEBUG_MODE", "false")
    monkeypatch.setenv("PIPELINE_LOG_TO_FILE", "false")
    monkeypatch.setenv("USE_LOGFIRE", "false")

    import car_navigator.pipeline_logger as pipeline_logger

    return importlib.reload(pipeline_logger)


def _capture(monkeypatch, pl):
    events = []

    def fake_log(level, message, extra=None, exc_info=None):
        events.append((level, message, extra))

    monkeypatch.setattr(pl.pipeline_logger, "log", fake_log)
    return events


def test_non_debug_mode_keeps_user_requests_latency_and_errors(monkeypatch):
    pl = _reload_pipeline_logger(monkeypatch, debug_log=False)
    events = _capture(monkeypatch, pl)

    pl.log_pipeline("SEARCH", "normal info", level=logging.INFO)
    pl.log_pipeline("RESOLVE", "USER_REQUEST", level=logging.INFO)
    pl.log_latency_summary("RESOLVE", "resolver.resolve", 12)
    pl.log_pipeline("BACKEND", "something failed", level=logging.ERROR)

    assert len(events) == 3
    assert events[0][1].startswith("USER_REQUEST")
    assert events[1][1].startswith("LATENCY_SUMMARY")
    assert events[2][0] == logging.ERROR


def test_debug_mode_logs_normal_events(monkeypatch):
    pl = _reload_pipeline_logger(monkeypatch, debug_log=True)
    events = _capture(monkeypatch, pl)

    pl.log_search("normal info", {"matches": 2})
    assert len(events) == 1
    assert events[0][2]["stage"] == "SEARCH"
    assert '"matches": 2' in events[0][1]


def test_truncate_data_redacts_sensitive_keys_and_long_values(monkeypatch):
    pl = _reload_pipeline_logger(monkeypatch, debug_log=True)

    data = {
        "api_key": "secret",
        "query": "x" * 200,
        "nested": {"password": "p", "ok": "yes"},
        "cars": list(range(10)),
    }
    out = pl._truncate_data(data, max_len=20)

    assert out["api_key"] == "***REDACTED***"
    assert out["query"].endswith("...")
    assert out["nested"]["password"] == "***REDACTED***"
    assert out["nested"]["ok"] == "yes"
    assert out["cars"] == "[10 items]"


def test_trace_stage_appends_stage_result(monkeypatch):
    pl = _reload_pipeline_logger(monkeypatch, debug_log=True)

    with pl.trace_query("ホンダで100万円以内", "sess-1") as trace:
        with pl.trace_stage("INTENT", "extract"):
            pass

    assert len(trace.stages) == 1
    assert trace.stages[0]["stage"] == "INTENT"
    assert trace.stages[0]["success"] is True
    assert pl.get_current_trace() is None


def test_trace_stage_records_failure_and_reraises(monkeypatch):
    pl = _reload_pipeline_logger(monkeypatch, debug_log=False)
    events = _capture(monkeypatch, pl)

    with pl.trace_query("q") as trace:
        with pytest.raises(ValueError):
            with pl.trace_stage("BACKEND", "generate"):
                raise ValueError("bad")

    assert trace.stages[0]["success"] is False
    assert trace.stages[0]["error"] == "bad"
    assert any(level == logging.ERROR for level, _, _ in events)
