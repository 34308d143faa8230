"""
Canonical Data Models

Pydantic models shared by the normalizer, the query engine, the resolver and
the backend. Wire names are camelCase (the frontend and the generative backend
both speak that shape); Python attributes are snake_case.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Vehicle
# =============================================================================


class VehicleSpecs(BaseModel):
    """Human-readable spec summaries derived from raw inventory fields."""

    engine: str = Field(..., description="e.g. 1800cc ハイブリッド")
    size: str = Field(..., description="e.g. 5ドア・5人乗り")
    safety: str = Field(..., description="e.g. エアバッグ, ABS")


class Vehicle(BaseModel):
    """
    Canonical vehicle.

    Two vehicles are the same vehicle iff their ``name`` strings are equal.
    Favorites, browsing history and result flagging all rely on this; the
    catalog ``code`` is deliberately not part of the identity.
    """

    name: str = Field(..., min_length=1, description="Maker + model + grade")
    year: int = Field(..., description="Model year, 0 when unknown")
    mileage: int = Field(..., ge=0, description="Kilometers")
    price: float = Field(..., ge=0, description="Price in 万円")
    image_url: str = Field(..., alias="imageUrl")
    specs: VehicleSpecs
    is_favorite: bool = Field(False, alias="isFavorite")
    price_drop_notification: Optional[bool] = Field(None, alias="priceDropNotification")

    class Config:
        populate_by_name = True

    @property
    def identity(self) -> str:
        return self.name

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


# =============================================================================
# Queries
# =============================================================================


class QueryCriteria(BaseModel):
    """Structured search criteria. A missing field means no constraint."""

    maker: Optional[str] = None
    model: Optional[str] = None
    min_year: Optional[int] = Field(None, alias="minYear")
    max_year: Optional[int] = Field(None, alias="maxYear")
    min_price: Optional[float] = Field(None, alias="minPrice")
    max_price: Optional[float] = Field(None, alias="maxPrice")
    max_mileage: Optional[int] = Field(None, alias="maxMileage")
    body_type: Optional[str] = Field(None, alias="bodyType")

    class Config:
        populate_by_name = True

    @field_validator("maker", "model", "body_type", mode="before")
    @classmethod
    def _blank_is_absent(cls, value):
        # unselected form dropdowns arrive as ""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def constraints(self) -> dict:
        """Only the fields that were actually supplied."""
        return self.model_dump(exclude_none=True)

    def is_empty(self) -> bool:
        return not self.constraints()


class RecommendSignal(BaseModel):
    """The user asked for general recommendations rather than a filter."""

    kind: Literal["recommend"] = "recommend"


class Unresolved(BaseModel):
    """Nothing extractable; local search is skipped."""

    kind: Literal["unresolved"] = "unresolved"


# =============================================================================
# Conversation / Backend contract
# =============================================================================


class ConversationTurn(BaseModel):
    role: Literal["user", "model"]
    text: str


class BackendResponse(BaseModel):
    """Response contract of the generative backend."""

    response_type: Literal["CONVERSATION", "CAR_RESULTS"] = Field(..., alias="responseType")
    message: str
    cars: list[Vehicle]
    quick_replies: Optional[list[str]] = Field(None, alias="quickReplies")

    class Config:
        populate_by_name = True


ResolutionSource = Literal["empty", "recommend", "local", "backend", "fallback"]


class Resolution(BaseModel):
    """What the resolver hands to the UI layer."""

    message: str
    vehicles: list[Vehicle] = Field(default_factory=list)
    suggested_replies: list[str] = Field(default_factory=list, alias="suggestedReplies")
    source: ResolutionSource

    class Config:
        populate_by_name = True
