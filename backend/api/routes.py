"""
API Routes

Defines all HTTP endpoints for the AI Car Navigator.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from backend.api.schemas import (
    ChatMetadata,
    ChatRequest,
    ChatResetRequest,
    ChatResetResponse,
    ChatResponse,
    ErrorResponse,
    FavoriteResponse,
    HealthResponse,
    NotificationUpdate,
    PriceDropResponse,
    SearchRequest,
    SearchResponse,
    SellingPointsResponse,
    ServiceHealth,
    SwipeRequest,
    VehicleListResponse,
    VehicleRequest,
)
from backend.core.config import settings
from backend.services.navigator_service import NavigatorService, get_navigator_service
from car_navigator.models import Vehicle


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter()

Navigator = Annotated[NavigatorService, Depends(get_navigator_service)]


# =============================================================================
# Chat Endpoint
# =============================================================================


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={
        200: {"description": "Successful response"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Send a chat message",
    description="Resolve free text into a reply and an optional list of vehicles.",
)
async def chat(request: ChatRequest, navigator: Navigator) -> ChatResponse:
    """
    Process a user chat message.

    The navigator will:
    - Answer recommendation requests from the catalog
    - Filter the catalog for maker / budget / year phrases
    - Hand everything else to the generative backend
    """
    result = await navigator.chat(
        message=request.message,
        session_id=request.session_id,
        history=request.history,
    )

    return ChatResponse(
        success=result["success"],
        response=result["response"],
        session_id=result["session_id"],
        vehicles=result["vehicles"],
        quick_replies=result["quick_replies"],
        metadata=ChatMetadata(**result["metadata"]),
    )


# =============================================================================
# Catalog Endpoints
# =============================================================================


@router.post("/search", response_model=SearchResponse, summary="Structured search")
async def search(request: SearchRequest, navigator: Navigator) -> SearchResponse:
    result = await navigator.search(request.criteria(), session_id=request.session_id)
    return SearchResponse(**result)


@router.get("/recommendations", response_model=VehicleListResponse, summary="Swipe feed")
async def recommendations(
    navigator: Navigator,
    count: Annotated[int, Query(ge=1, le=50)] = settings.feed_count,
    session_id: str | None = None,
) -> VehicleListResponse:
    vehicles = await navigator.recommendations(count=count, session_id=session_id)
    return VehicleListResponse(vehicles=vehicles)


@router.get("/makers", response_model=list[str], summary="Makers in the catalog")
async def makers(navigator: Navigator) -> list[str]:
    return await navigator.makers()


@router.get("/makers/{maker}/models", response_model=list[str], summary="Models of a maker")
async def models(maker: str, navigator: Navigator) -> list[str]:
    return await navigator.models(maker)


@router.post(
    "/vehicles/selling-points",
    response_model=SellingPointsResponse,
    summary="Three selling points for a vehicle",
)
async def selling_points(vehicle: Vehicle, navigator: Navigator) -> SellingPointsResponse:
    return SellingPointsResponse(points=await navigator.selling_points(vehicle))


# =============================================================================
# Session Endpoints
# =============================================================================


@router.get("/sessions/{session_id}", summary="Favorites, histories and settings")
async def get_session(session_id: str, navigator: Navigator) -> dict:
    return navigator.sessions.get(session_id).snapshot()


@router.post("/sessions/{session_id}/favorites", response_model=FavoriteResponse)
async def toggle_favorite(session_id: str, request: VehicleRequest, navigator: Navigator) -> FavoriteResponse:
    session = navigator.sessions.get(session_id)
    is_favorite = session.toggle_favorite(request.vehicle)
    return FavoriteResponse(is_favorite=is_favorite, favorites=len(session.favorites))


@router.post("/sessions/{session_id}/views", response_model=Vehicle)
async def record_view(session_id: str, request: VehicleRequest, navigator: Navigator) -> Vehicle:
    return navigator.sessions.get(session_id).record_view(request.vehicle)


@router.post("/sessions/{session_id}/swipes", response_model=FavoriteResponse)
async def swipe(session_id: str, request: SwipeRequest, navigator: Navigator) -> FavoriteResponse:
    session = navigator.sessions.get(session_id)
    is_favorite = session.swipe(request.vehicle, request.direction)
    return FavoriteResponse(is_favorite=is_favorite, favorites=len(session.favorites))


@router.post("/sessions/{session_id}/price-drop", response_model=PriceDropResponse)
async def toggle_price_drop(session_id: str, request: VehicleRequest, navigator: Navigator) -> PriceDropResponse:
    enabled = navigator.sessions.get(session_id).toggle_price_drop(request.vehicle)
    return PriceDropResponse(enabled=enabled)


@router.post("/sessions/{session_id}/chat/reset", response_model=ChatResetResponse)
async def reset_chat(session_id: str, request: ChatResetRequest, navigator: Navigator) -> ChatResetResponse:
    """Archive the finished conversation; the client starts a fresh one."""
    session = navigator.sessions.get(session_id)
    archived = session.archive_chat(request.history)
    return ChatResetResponse(archived=archived, chats=len(session.chat_history))


@router.put("/sessions/{session_id}/notifications")
async def update_notifications(session_id: str, request: NotificationUpdate, navigator: Navigator) -> dict:
    updated = navigator.sessions.get(session_id).update_notifications(
        price_drop=request.price_drop,
        new_arrivals=request.new_arrivals,
        offers=request.offers,
    )
    return updated.model_dump(by_alias=True)


# =============================================================================
# Health Check Endpoint
# =============================================================================


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the catalog and the resolution cache.",
)
async def health_check(navigator: Navigator) -> HealthResponse:
    health = await navigator.health_check()
    services = {"navigator": ServiceHealth(**health)}
    return HealthResponse(
        status="healthy" if health["status"] == "ok" else "unhealthy",
        services=services,
        timestamp=datetime.now(),
    )


@router.get(
    "/",
    summary="API Root",
    description="Basic endpoint to verify API is running.",
)
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "docs": "/docs",
    }
