"""
Интерфейсы (порты) для контекста бронирований.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

from shared_kernel import EntityId

if TYPE_CHECKING:
    from .domain import Booking


class IBookingRepository(Protocol):
    """Интерфейс репозитория для бронирований."""

    def add(self, booking: Booking) -> None: ...
    def get_by_id(self, booking_id: EntityId) -> Booking | None: ...
    def update(self, booking: Booking) -> None: ...
    def find_successor(self, booking_id: EntityId) -> Optional[Booking]: ...
