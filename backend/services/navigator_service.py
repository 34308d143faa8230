"""
Navigator Service

Wrapper around the QueryResolver and the catalog for use in FastAPI.
Owns the session store (favorites, histories) so the core stays stateless,
and turns resolver results into API payloads.
"""

import uuid
from datetime import datetime
from time import perf_counter
from typing import Optional, Sequence

from backend.core.config import settings
from car_navigator.catalog import Catalog
from car_navigator.generative import ChatModelBackend, GenerativeBackend
from car_navigator.logging_config import get_logger
from car_navigator.models import ConversationTurn, QueryCriteria, Vehicle
from car_navigator.orchestrator import QueryResolver
from car_navigator.pipeline_logger import log_latency_summary
from car_navigator.query_engine import NO_CRITERIA_MESSAGE, NO_MATCH_MESSAGE
from car_navigator.resolution_cache import ResolutionCache
from car_navigator.session import SessionStore

logger = get_logger(__name__)

SEARCH_FOUND_MESSAGE = "{count}件の車両が見つかりました。"


class NavigatorService:
    """
    Service wrapper for the car navigator core.

    Provides a clean interface for the API: lazy initialization, session
    management and response shaping.
    """

    def __init__(
        self,
        catalog: Optional[Catalog] = None,
        backend: Optional[GenerativeBackend] = None,
    ):
        self._catalog = catalog
        self._backend = backend
        self._resolver: Optional[QueryResolver] = None
        self._cache: Optional[ResolutionCache] = None
        self._initialized = False
        self.sessions = SessionStore(max_sessions=settings.max_sessions)

    async def initialize(self) -> None:
        """Load the catalog, build the backend client and connect the cache (once)."""
        if self._initialized:
            return

        if self._catalog is None:
            self._catalog = Catalog.load(settings.catalog_path)
        if self._backend is None:
            self._backend = ChatModelBackend(
                api_key=settings.llm_api_key,
                model=settings.llm_model,
                base_url=settings.llm_base_url,
                temperature=settings.llm_temperature,
                max_tokens=settings.llm_max_tokens,
            )

        if settings.resolution_cache_enabled:
            self._cache = ResolutionCache(
                host=settings.redis_host,
                port=settings.redis_port,
                password=settings.redis_password,
                db=settings.redis_db,
                default_ttl=settings.resolution_cache_ttl,
            )
            await self._cache.connect()
        else:
            logger.info("Resolution cache is disabled")

        self._resolver = QueryResolver(
            catalog=self._catalog,
            backend=self._backend,
            cache=self._cache,
            backend_timeout=settings.backend_timeout,
            result_limit=settings.resolve_result_limit,
            recommend_count=settings.recommend_count,
        )
        self._initialized = True

    @property
    def catalog(self) -> Catalog:
        if not self._initialized or self._catalog is None:
            raise RuntimeError("Service not initialized. Call initialize() first.")
        return self._catalog

    @property
    def resolver(self) -> QueryResolver:
        if not self._initialized or self._resolver is None:
            raise RuntimeError("Service not initialized. Call initialize() first.")
        return self._resolver

    # ── Chat ──────────────────────────────────────────────────────

    async def chat(
        self,
        message: str,
        session_id: Optional[str] = None,
        history: Sequence[ConversationTurn] = (),
    ) -> dict:
        """
        Resolve a chat message and return a structured response.

        Returns:
            Dictionary with response, vehicles, quick replies and metadata
        """
        request_start = perf_counter()
        await self.initialize()

        if not session_id:
            session_id = str(uuid.uuid4())
        session = self.sessions.get(session_id)
        session.record_search(message)

        try:
            resolution = await self.resolver.resolve(message, history, session_id=session_id)
        except Exception as e:
            took_ms = int((perf_counter() - request_start) * 1000)
            logger.error("Resolver failed", error=e)
            return {
                "success": False,
                "response": "申し訳ありません、エラーが発生しました。もう一度お試しください。",
                "session_id": session_id,
                "vehicles": [],
                "quick_replies": [],
                "metadata": {"took_ms": took_ms, "source": "error", "total_results": 0},
            }

        vehicles = session.mark_favorites(resolution.vehicles)
        took_ms = int((perf_counter() - request_start) * 1000)
        return {
            "success": resolution.source != "fallback",
            "response": resolution.message,
            "session_id": session_id,
            "vehicles": vehicles,
            "quick_replies": resolution.suggested_replies,
            "metadata": {
                "took_ms": took_ms,
                "source": resolution.source,
                "total_results": len(vehicles),
            },
        }

    # ── Structured search / feed ──────────────────────────────────

    async def search(
        self,
        criteria: QueryCriteria,
        session_id: Optional[str] = None,
    ) -> dict:
        """Search-by-form. Zero criteria is rejected before any search runs."""
        await self.initialize()
        if criteria.is_empty():
            return {"success": False, "message": NO_CRITERIA_MESSAGE, "vehicles": [], "total_results": 0}

        start = perf_counter()
        matches = self.catalog.search(criteria)
        vehicles = matches[: settings.search_result_limit]
        if session_id:
            vehicles = self.sessions.get(session_id).mark_favorites(vehicles)

        log_latency_summary(
            "SEARCH",
            "navigator_service.search",
            int((perf_counter() - start) * 1000),
            meta={"criteria": criteria.constraints(), "matches": len(matches)},
        )
        if not vehicles:
            return {"success": True, "message": NO_MATCH_MESSAGE, "vehicles": [], "total_results": 0}
        return {
            "success": True,
            "message": SEARCH_FOUND_MESSAGE.format(count=len(matches)),
            "vehicles": vehicles,
            "total_results": len(matches),
        }

    async def recommendations(self, count: Optional[int] = None, session_id: Optional[str] = None) -> list[Vehicle]:
        await self.initialize()
        vehicles = self.catalog.sample(settings.feed_count if count is None else count)
        if session_id:
            vehicles = self.sessions.get(session_id).mark_favorites(vehicles)
        return vehicles

    async def makers(self) -> list[str]:
        await self.initialize()
        return self.catalog.unique_makers()

    async def models(self, maker: str) -> list[str]:
        await self.initialize()
        return self.catalog.models_by_maker(maker)

    async def selling_points(self, vehicle: Vehicle) -> list[str]:
        await self.initialize()
        return await self._backend.selling_points(vehicle)

    async def close(self) -> None:
        if self._cache is not None:
            await self._cache.close()

    # ── Health ────────────────────────────────────────────────────

    async def health_check(self) -> dict:
        try:
            start = datetime.now()
            await self.initialize()
            health = {
                "status": "ok",
                "latency_ms": int((datetime.now() - start).total_seconds() * 1000),
                "detail": {"catalog_records": len(self.catalog)},
            }
            if self._cache and self._cache.available:
                health["detail"]["resolution_cache"] = await self._cache.get_stats()
            else:
                health["detail"]["resolution_cache"] = {"available": False}
            return health
        except Exception as e:
            return {"status": "error", "error": str(e)}


# Global service instance
_navigator_service: Optional[NavigatorService] = None


def get_navigator_service() -> NavigatorService:
    """Get or create the navigator service instance."""
    global _navigator_service
    if _navigator_service is None:
        _navigator_service = NavigatorService()
    return _navigator_service
