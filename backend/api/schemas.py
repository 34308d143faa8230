"""
Pydantic Schemas for API Request/Response

Defines the data models used in API endpoints. Vehicles travel in the
canonical camelCase shape of ``car_navigator.models.Vehicle``.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from car_navigator.models import ConversationTurn, QueryCriteria, Vehicle


# =============================================================================
# Request Schemas
# =============================================================================


class ChatRequest(BaseModel):
    """Request body for chat endpoint."""

    message: str = Field(
        ...,
        max_length=1000,
        description="User message in Japanese (empty asks for criteria)",
        examples=["ホンダで100万円以内", "おすすめの車は？", "燃費の良いファミリーカー"],
    )
    session_id: Optional[str] = Field(
        default=None,
        description="Optional session ID for conversation continuity",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    )
    history: list[ConversationTurn] = Field(
        default_factory=list,
        description="Previous turns, oldest first",
    )


class SearchRequest(QueryCriteria):
    """Structured search form. At least one criterion is required."""

    session_id: Optional[str] = Field(default=None)

    def criteria(self) -> QueryCriteria:
        return QueryCriteria(**self.model_dump(exclude={"session_id"}))


class VehicleRequest(BaseModel):
    """A vehicle selected in the UI, plus its session."""

    vehicle: Vehicle
    session_id: Optional[str] = Field(default=None)


class SwipeRequest(BaseModel):
    vehicle: Vehicle
    direction: Literal["left", "right"]


class ChatResetRequest(BaseModel):
    """The conversation being closed, oldest turn first."""

    history: list[ConversationTurn] = Field(default_factory=list)


class NotificationUpdate(BaseModel):
    price_drop: Optional[bool] = Field(None, alias="priceDrop")
    new_arrivals: Optional[bool] = Field(None, alias="newArrivals")
    offers: Optional[bool] = Field(None, alias="offers")

    class Config:
        populate_by_name = True


# =============================================================================
# Response Schemas
# =============================================================================


class ChatMetadata(BaseModel):
    """Metadata about the chat response."""

    took_ms: int = Field(..., description="Processing time in milliseconds")
    source: Optional[str] = Field(
        None, description="empty / recommend / local / backend / fallback"
    )
    total_results: Optional[int] = Field(
        None, description="Number of vehicles returned"
    )


class ChatResponse(BaseModel):
    """Response body for chat endpoint."""

    success: bool = Field(..., description="Whether the request was successful")
    response: str = Field(..., description="Assistant message in Japanese")
    session_id: str = Field(..., description="Session ID for continuity")
    vehicles: list[Vehicle] = Field(default_factory=list)
    quick_replies: list[str] = Field(default_factory=list)
    metadata: ChatMetadata = Field(..., description="Response metadata")

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "response": "条件に合う車両を1台見つけました。",
                "session_id": "550e8400-e29b-41d4-a716-446655440000",
                "vehicles": [
                    {
                        "name": "ホンダ フィット 13G Fパッケージ",
                        "year": 2016,
                        "mileage": 68000,
                        "price": 70.7,
                        "imageUrl": "https://picsum.photos/seed/CN1002/800/600",
                        "specs": {
                            "engine": "1300cc ガソリン",
                            "size": "5ドア・5人乗り",
                            "safety": "運転席エアバッグ, ABS",
                        },
                        "isFavorite": False,
                    }
                ],
                "quick_replies": ["詳細を見る", "他の条件で検索", "問い合わせする"],
                "metadata": {"took_ms": 3, "source": "local", "total_results": 1},
            }
        }


class SearchResponse(BaseModel):
    success: bool
    message: str
    vehicles: list[Vehicle] = Field(default_factory=list)
    total_results: int = 0


class VehicleListResponse(BaseModel):
    vehicles: list[Vehicle] = Field(default_factory=list)


class SellingPointsResponse(BaseModel):
    points: list[str]


class FavoriteResponse(BaseModel):
    is_favorite: bool
    favorites: int


class PriceDropResponse(BaseModel):
    enabled: bool


class ChatResetResponse(BaseModel):
    archived: bool
    chats: int = Field(..., description="Archived conversations in this session")


class ErrorResponse(BaseModel):
    """Error response schema."""

    success: bool = Field(default=False)
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error info")


# =============================================================================
# Health Check Schemas
# =============================================================================


class ServiceHealth(BaseModel):
    """Health status of a single service."""

    status: str = Field(..., description="ok, error, disabled")
    latency_ms: Optional[int] = Field(None, description="Response latency")
    error: Optional[str] = Field(None, description="Error message if unhealthy")
    detail: Optional[dict] = Field(None, description="Service-specific details")


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(..., description="Overall status: healthy or unhealthy")
    services: dict[str, ServiceHealth] = Field(
        ..., description="Status of each service"
    )
    timestamp: datetime = Field(..., description="Check timestamp")
