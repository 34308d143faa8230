"""
Pipeline Logger

One log line per resolver event, tagged with the trace of the query that
caused it:

    resolve → intent → search | sample → cache → backend → latency summary

Outside debug mode only user requests, latency summaries and errors are
emitted. With USE_LOGFIRE=true and a LOGFIRE_TOKEN the same records are
forwarded to Logfire.
"""

import json
import logging
import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from time import perf_counter
from typing import Any, Optional


STAGE_ICONS = {
    "RESOLVE": "🧭",
    "INTENT": "🎯",
    "SEARCH": "🔍",
    "SAMPLE": "🎲",
    "BACKEND": "🤖",
    "CACHE": "💾",
    "CATALOG": "📚",
}

REDACTED = "***REDACTED***"
_SECRET_KEYS = frozenset({"token", "api_key", "authorization", "password", "secret"})


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


SERVICE_NAME = os.environ.get("LOGFIRE_SERVICE_NAME", "car-navigator")
DEBUG_LOG = _env_flag("DEBUG_LOG", _env_flag("DEBUG_MODE"))
PIPELINE_LOG_LEVEL = os.environ.get("PIPELINE_LOG_LEVEL", "DEBUG" if DEBUG_LOG else "INFO").upper()
PIPELINE_LOG_TO_FILE = _env_flag("PIPELINE_LOG_TO_FILE")
PIPELINE_LOG_FILE = Path(
    os.environ.get("PIPELINE_LOG_DIR", str(Path(__file__).parent.parent / "logs"))
) / f"pipeline-{SERVICE_NAME}.log"
USE_LOGFIRE = _env_flag("USE_LOGFIRE")

_logfire_enabled = False
if USE_LOGFIRE and os.environ.get("LOGFIRE_TOKEN"):
    import logfire

    logfire.configure(
        token=os.environ["LOGFIRE_TOKEN"],
        service_name=SERVICE_NAME,
        environment=os.environ.get("LOGFIRE_ENVIRONMENT", "production"),
        console=False,
    )
    _logfire_enabled = True


class PipelineFormatter(logging.Formatter):
    """HH:MM:SS.mmm │ trace │ icon STAGE │ message"""

    def format(self, record):
        stage = getattr(record, "stage", "RESOLVE")
        icon = "❌" if record.levelno >= logging.ERROR else STAGE_ICONS.get(stage, "📋")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        trace_id = getattr(record, "trace_id", "--------")[:8]
        return f"{clock} │ {trace_id} │ {icon} {stage:8} │ {record.getMessage()}"


def setup_pipeline_logger() -> logging.Logger:
    logger = logging.getLogger("car_navigator.pipeline")
    if logger.handlers:
        return logger

    level = getattr(logging, PIPELINE_LOG_LEVEL, logging.INFO)
    logger.setLevel(level)
    logger.propagate = False

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if PIPELINE_LOG_TO_FILE:
        PIPELINE_LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(PIPELINE_LOG_FILE, maxBytes=5_000_000, backupCount=3, encoding="utf-8", delay=True)
        )
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(PipelineFormatter())
        logger.addHandler(handler)

    if _logfire_enabled:
        logfire_handler = logfire.LogfireLoggingHandler()
        logfire_handler.setLevel(logging.INFO)
        logger.addHandler(logfire_handler)

    return logger


pipeline_logger = setup_pipeline_logger()


# ============================================================================
# Traces
# ============================================================================

@dataclass
class TraceContext:
    """Stages recorded while one query is resolved."""

    query: str
    session_id: str = ""
    trace_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started: float = field(default_factory=perf_counter)
    stages: list[dict] = field(default_factory=list)

    def elapsed_ms(self) -> int:
        return int((perf_counter() - self.started) * 1000)

    def to_dict(self) -> dict:
        return {
            "trace_id": self.trace_id,
            "query": self.query,
            "session_id": self.session_id,
            "total_ms": self.elapsed_ms(),
            "stages": self.stages,
        }


_current_trace: ContextVar[Optional[TraceContext]] = ContextVar("car_navigator_trace", default=None)


def get_current_trace() -> Optional[TraceContext]:
    return _current_trace.get()


# ============================================================================
# Emitting
# ============================================================================

def _is_quiet_event(stage: str, message: str, level: int) -> bool:
    if DEBUG_LOG or level >= logging.ERROR:
        return False
    if stage == "RESOLVE" and message.startswith("USER_REQUEST"):
        return False
    return not message.startswith("LATENCY_SUMMARY")


def _truncate_data(data: dict, max_len: int = 100) -> dict:
    """Shorten long strings and lists, mask secret-looking keys (recursively)."""
    result = {}
    for key, value in data.items():
        if str(key).lower() in _SECRET_KEYS:
            result[key] = REDACTED
        elif isinstance(value, dict):
            result[key] = _truncate_data(value, max_len)
        elif isinstance(value, (list, tuple)) and len(value) > 5:
            result[key] = f"[{len(value)} items]"
        elif isinstance(value, str) and len(value) > max_len:
            result[key] = value[:max_len] + "..."
        else:
            result[key] = value
    return result


def log_pipeline(
    stage: str,
    message: str,
    data: Optional[dict] = None,
    level: int = logging.INFO,
    trace_id: Optional[str] = None,
    exc_info: Any = None,
):
    """Emit one pipeline event; ``stage`` is a key of STAGE_ICONS."""
    if _is_quiet_event(stage, message, level):
        return

    if trace_id is None:
        trace = get_current_trace()
        trace_id = trace.trace_id if trace else "no-trace"
    if data:
        message = f"{message} | {json.dumps(_truncate_data(data), ensure_ascii=False, default=str)}"

    pipeline_logger.log(level, message, extra={"stage": stage, "trace_id": trace_id}, exc_info=exc_info)


def log_user_request(query: str, session_id: str):
    log_pipeline("RESOLVE", "USER_REQUEST", {"query": query, "session": session_id})


def log_intent(message: str, data: Optional[dict] = None):
    log_pipeline("INTENT", message, data)


def log_search(message: str, data: Optional[dict] = None):
    log_pipeline("SEARCH", message, data)


def log_backend(message: str, data: Optional[dict] = None):
    log_pipeline("BACKEND", message, data)


def log_cache(message: str, data: Optional[dict] = None):
    log_pipeline("CACHE", message, data)


def log_error(stage: str, message: str, error: Optional[Exception] = None):
    data = {"error": str(error), "error_type": type(error).__name__} if error else None
    log_pipeline(stage, message, data, level=logging.ERROR, exc_info=error)


def log_latency_summary(
    stage: str,
    component: str,
    total_ms: int,
    breakdown_ms: Optional[dict[str, int]] = None,
    meta: Optional[dict[str, Any]] = None,
):
    """Exactly one of these per request; kept even outside debug mode."""
    payload: dict[str, Any] = {"component": component, "total_ms": int(total_ms)}
    if breakdown_ms:
        payload["breakdown_ms"] = {name: int(ms) for name, ms in breakdown_ms.items()}
    if meta:
        payload["meta"] = meta
    log_pipeline(stage, "LATENCY_SUMMARY", payload)


# ============================================================================
# Context managers
# ============================================================================

@contextmanager
def trace_query(query: str, session_id: str = ""):
    """
    Open a trace for one resolve() call.

        with trace_query("ホンダで100万円以内", "session123") as trace:
            ...
    """
    trace = TraceContext(query=query, session_id=session_id)
    token = _current_trace.set(trace)
    log_user_request(query, session_id)
    try:
        yield trace
    finally:
        log_pipeline("RESOLVE", f"done in {trace.elapsed_ms()}ms", {"stages": len(trace.stages)})
        _current_trace.reset(token)


@contextmanager
def trace_stage(stage: str, description: str = ""):
    """
    Time one stage and append its record to the current trace.
    Exceptions are logged and re-raised.
    """
    trace = get_current_trace()
    record: dict[str, Any] = {"stage": stage, "description": description}
    started = perf_counter()
    log_pipeline(stage, f"▶ {description}")

    try:
        yield record
        record["success"] = True
    except Exception as e:
        record["success"] = False
        record["error"] = str(e)
        log_pipeline(stage, f"✗ {description}: {e}", level=logging.ERROR, exc_info=e)
        raise
    finally:
        record["elapsed_ms"] = int((perf_counter() - started) * 1000)
        if trace is not None:
            trace.stages.append(record)
        if record.get("success"):
            log_pipeline(stage, f"✓ {description} ({record['elapsed_ms']}ms)")
