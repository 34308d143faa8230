"""
Session State

Per-session user state that sits outside the stateless core: favorites,
browsing, search and chat history, notification settings and price-drop
toggles.
Every "same vehicle" check compares ``Vehicle.identity`` (the display name).
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Iterable, Literal, Optional, Sequence

from pydantic import BaseModel, Field

from car_navigator.models import ConversationTurn, Vehicle


SwipeDirection = Literal["left", "right"]

DEFAULT_MAX_SESSIONS = 1000


class NotificationSettings(BaseModel):
    price_drop: bool = Field(True, alias="priceDrop")
    new_arrivals: bool = Field(False, alias="newArrivals")
    offers: bool = Field(True, alias="offers")

    class Config:
        populate_by_name = True


class SessionState:
    """Mutable state of one user session. Newest entries come first in histories."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.favorites: list[Vehicle] = []
        self.browsing_history: list[Vehicle] = []
        self.search_history: list[str] = []
        self.chat_history: list[list[ConversationTurn]] = []
        self.notifications = NotificationSettings()
        self._price_drop: dict[str, bool] = {}

    # ── Favorites ─────────────────────────────────────────────────

    def is_favorite(self, vehicle: Vehicle) -> bool:
        return any(fav.identity == vehicle.identity for fav in self.favorites)

    def toggle_favorite(self, vehicle: Vehicle) -> bool:
        """Add or remove ``vehicle``; returns the new favorite state."""
        if self.is_favorite(vehicle):
            self.favorites = [f for f in self.favorites if f.identity != vehicle.identity]
            return False
        self.favorites.append(vehicle.model_copy(update={"is_favorite": True}))
        return True

    def mark_favorites(self, vehicles: Iterable[Vehicle]) -> list[Vehicle]:
        """Copies of ``vehicles`` with ``is_favorite`` and price-drop flags from this session."""
        return [self.decorate(vehicle) for vehicle in vehicles]

    def decorate(self, vehicle: Vehicle) -> Vehicle:
        return vehicle.model_copy(update={
            "is_favorite": self.is_favorite(vehicle),
            "price_drop_notification": self._price_drop.get(vehicle.identity),
        })

    # ── Histories ─────────────────────────────────────────────────

    def record_view(self, vehicle: Vehicle) -> Vehicle:
        """Remember a detail view (once per vehicle) and return the decorated vehicle."""
        if not any(v.identity == vehicle.identity for v in self.browsing_history):
            self.browsing_history.insert(0, vehicle)
        return self.decorate(vehicle)

    def record_search(self, query: str) -> None:
        query = (query or "").strip()
        if query and query not in self.search_history:
            self.search_history.insert(0, query)

    def archive_chat(self, turns: Sequence[ConversationTurn]) -> bool:
        """Keep a finished conversation (newest first). Empty ones are dropped."""
        if not turns:
            return False
        self.chat_history.insert(0, [turn.model_copy() for turn in turns])
        return True

    # ── Swipe feed ────────────────────────────────────────────────

    def swipe(self, vehicle: Vehicle, direction: SwipeDirection) -> bool:
        """A right swipe favorites the vehicle (never un-favorites). Returns favorite state."""
        if direction == "right" and not self.is_favorite(vehicle):
            return self.toggle_favorite(vehicle)
        return self.is_favorite(vehicle)

    # ── Notifications ─────────────────────────────────────────────

    def toggle_price_drop(self, vehicle: Vehicle) -> bool:
        enabled = not self._price_drop.get(vehicle.identity, False)
        self._price_drop[vehicle.identity] = enabled
        return enabled

    def update_notifications(
        self,
        price_drop: Optional[bool] = None,
        new_arrivals: Optional[bool] = None,
        offers: Optional[bool] = None,
    ) -> NotificationSettings:
        changes = {
            key: value
            for key, value in {
                "price_drop": price_drop,
                "new_arrivals": new_arrivals,
                "offers": offers,
            }.items()
            if value is not None
        }
        self.notifications = self.notifications.model_copy(update=changes)
        return self.notifications

    def snapshot(self) -> dict:
        return {
            "sessionId": self.session_id,
            "favorites": [self.decorate(v).to_wire() for v in self.favorites],
            "browsingHistory": [self.decorate(v).to_wire() for v in self.browsing_history],
            "searchHistory": list(self.search_history),
            "chatHistory": [[turn.model_dump() for turn in chat] for chat in self.chat_history],
            "notificationSettings": self.notifications.model_dump(by_alias=True),
        }


class SessionStore:
    """
    In-memory session registry, least recently used first out.

    Anonymous chat requests mint a fresh session id each time, so the store
    is bounded; the oldest untouched session is dropped past ``max_sessions``.
    """

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS):
        self.max_sessions = max(1, max_sessions)
        self._sessions: OrderedDict[str, SessionState] = OrderedDict()

    def get(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if state is None:
            state = SessionState(session_id)
            self._sessions[session_id] = state
            while len(self._sessions) > self.max_sessions:
                self._sessions.popitem(last=False)
        else:
            self._sessions.move_to_end(session_id)
        return state

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
