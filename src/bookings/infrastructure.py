"""
Инфраструктурный слой контекста бронирований.
"""

from typing import Optional

from shared_kernel import EntityId, Transaction

from . import interfaces as ports
from .domain import Booking

BOOKINGS_COLLECTION = "bookings"


class DocumentBookingRepository(ports.IBookingRepository):
    """Репозиторий бронирований поверх транзакции хранилища."""

    def __init__(self, tx: Transaction):
        self._tx = tx

    def get_by_id(self, booking_id: EntityId) -> Optional[Booking]:
        document = self._tx.get(BOOKINGS_COLLECTION, str(booking_id))
        if document is None:
            return None
        return Booking.model_validate(document)

    def add(self, booking: Booking) -> None:
        if self._tx.get(BOOKINGS_COLLECTION, str(booking.id)) is not None:
            raise ValueError(f"Booking with id {booking.id} already exists")
        self._save(booking)

    def update(self, booking: Booking) -> None:
        if self._tx.get(BOOKINGS_COLLECTION, str(booking.id)) is None:
            raise KeyError(f"Booking with id {booking.id} not found")
        self._save(booking)

    def find_successor(self, booking_id: EntityId) -> Optional[Booking]:
        documents = self._tx.query(
            BOOKINGS_COLLECTION, lambda d: d["predecessor_id"] == str(booking_id)
        )
        return Booking.model_validate(documents[0]) if documents else None

    def _save(self, booking: Booking) -> None:
        self._tx.set(
            BOOKINGS_COLLECTION, str(booking.id), booking.model_dump(mode="json")
        )
