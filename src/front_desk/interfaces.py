"""
Интерфейсы (порты) для контекста стойки регистрации.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

from bookings.interfaces import IBookingRepository
from rooms.interfaces import IRoomRepository


class IHotelUnitOfWork(Protocol):
    """Единица работы, охватывающая номера и бронирования одной транзакцией."""

    @property
    def rooms(self) -> IRoomRepository: ...
    @property
    def bookings(self) -> IBookingRepository: ...

    def collect_events(self, aggregate: Any) -> None: ...
    def __enter__(self) -> IHotelUnitOfWork: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> Optional[bool]: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


HotelUnitOfWorkFactory = Callable[[], IHotelUnitOfWork]
