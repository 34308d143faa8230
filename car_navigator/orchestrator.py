"""
Query Resolution Orchestrator

Turns free text into a message plus a vehicle list. Resolution is strictly
sequential, local first:

  1. empty text        → "please specify criteria"
  2. recommendation    → random sample from the catalog
  3. extracted filters → structured search (empty result falls through)
  4. anything else     → generative backend (optionally via the cache)
  5. backend failure   → fixed apology with retry suggestions

``resolve`` never raises for backend problems; they are logged and mapped to
the fallback resolution.
"""

from __future__ import annotations

import asyncio
from time import perf_counter
from typing import Optional, Sequence

from car_navigator.catalog import Catalog
from car_navigator.generative import BackendError, GenerativeBackend
from car_navigator.intent import extract, matched_rules
from car_navigator.models import (
    ConversationTurn,
    QueryCriteria,
    RecommendSignal,
    Resolution,
)
from car_navigator.pipeline_logger import (
    log_error,
    log_intent,
    log_latency_summary,
    log_search,
    trace_query,
    trace_stage,
)
from car_navigator.query_engine import NO_CRITERIA_MESSAGE
from car_navigator.resolution_cache import ResolutionCache


RESOLVE_RESULT_LIMIT = 5
RECOMMEND_COUNT = 5
DEFAULT_BACKEND_TIMEOUT = 30.0

RECOMMEND_MESSAGE = "人気の車両からおすすめを{count}台ピックアップしました。"
LOCAL_RESULTS_MESSAGE = "条件に合う車両を{count}台見つけました。"
LOCAL_RESULTS_REPLIES = ["詳細を見る", "他の条件で検索", "問い合わせする"]
FALLBACK_MESSAGE = "すみません、現在システムに問題が発生しています。後ほど再度お試しください。"
FALLBACK_REPLIES = ["もう一度試す", "条件を変更する"]


def fallback_resolution() -> Resolution:
    return Resolution(
        message=FALLBACK_MESSAGE,
        vehicles=[],
        suggested_replies=list(FALLBACK_REPLIES),
        source="fallback",
    )


class QueryResolver:
    """Composition root of the core: catalog + intent + search + backend."""

    def __init__(
        self,
        catalog: Catalog,
        backend: GenerativeBackend,
        cache: Optional[ResolutionCache] = None,
        backend_timeout: float = DEFAULT_BACKEND_TIMEOUT,
        result_limit: int = RESOLVE_RESULT_LIMIT,
        recommend_count: int = RECOMMEND_COUNT,
    ):
        self.catalog = catalog
        self.backend = backend
        self.cache = cache
        self.backend_timeout = backend_timeout
        self.result_limit = result_limit
        self.recommend_count = recommend_count

    async def resolve(
        self,
        text: str,
        history: Sequence[ConversationTurn] = (),
        session_id: str = "",
    ) -> Resolution:
        request_start = perf_counter()
        text = (text or "").strip()

        with trace_query(text, session_id):
            if not text:
                resolution = Resolution(message=NO_CRITERIA_MESSAGE, source="empty")
            else:
                resolution = self._resolve_locally(text)
                if resolution is None:
                    resolution = await self._resolve_remotely(text, history)

            log_latency_summary(
                "RESOLVE",
                "resolver.resolve",
                int((perf_counter() - request_start) * 1000),
                meta={"source": resolution.source, "vehicles": len(resolution.vehicles)},
            )
        return resolution

    # ── Local path ────────────────────────────────────────────────

    def _resolve_locally(self, text: str) -> Optional[Resolution]:
        with trace_stage("INTENT", "extract"):
            intent = extract(text)
        log_intent("Intent extracted", {"kind": type(intent).__name__, "rules": matched_rules(text)})

        if isinstance(intent, RecommendSignal):
            with trace_stage("SAMPLE", "recommendation sample"):
                vehicles = self.catalog.sample(self.recommend_count)
            return Resolution(
                message=RECOMMEND_MESSAGE.format(count=len(vehicles)),
                vehicles=vehicles,
                suggested_replies=list(LOCAL_RESULTS_REPLIES),
                source="recommend",
            )

        if isinstance(intent, QueryCriteria):
            with trace_stage("SEARCH", "structured search"):
                matches = self.catalog.search(intent)
            log_search("Local search finished", {
                "criteria": intent.constraints(),
                "matches": len(matches),
            })
            if matches:
                vehicles = matches[: self.result_limit]
                return Resolution(
                    message=LOCAL_RESULTS_MESSAGE.format(count=len(vehicles)),
                    vehicles=vehicles,
                    suggested_replies=list(LOCAL_RESULTS_REPLIES),
                    source="local",
                )

        return None

    # ── Remote path ───────────────────────────────────────────────

    async def _resolve_remotely(
        self,
        text: str,
        history: Sequence[ConversationTurn],
    ) -> Resolution:
        cacheable = self.cache is not None and self.cache.available and not history
        if cacheable:
            cached = await self.cache.get(text)
            if cached is not None:
                return cached

        try:
            with trace_stage("BACKEND", "generate"):
                response = await asyncio.wait_for(
                    self.backend.generate(text, list(history)),
                    timeout=self.backend_timeout,
                )
        except asyncio.TimeoutError as e:
            log_error("BACKEND", f"Backend timed out after {self.backend_timeout}s", e)
            return fallback_resolution()
        except BackendError as e:
            log_error("BACKEND", "Backend returned an unusable response", e)
            return fallback_resolution()
        except Exception as e:
            log_error("BACKEND", f"Backend call failed: {e}", e)
            return fallback_resolution()

        resolution = Resolution(
            message=response.message,
            vehicles=list(response.cars),
            suggested_replies=list(response.quick_replies or []),
            source="backend",
        )
        if cacheable and response.response_type == "CAR_RESULTS":
            await self.cache.set(text, resolution)
        return resolution
