"""
Инфраструктурный слой контекста стойки регистрации.

Единица работы открывает одну транзакцию хранилища на все затронутые
номера и бронирования. События собираются по ходу работы и публикуются
только после успешной фиксации.
"""

from typing import Any, List, Optional

from bookings.infrastructure import DocumentBookingRepository
from rooms.infrastructure import DocumentRoomRepository
from shared_kernel import (
    ConcurrencyException,
    DomainEvent,
    DomainException,
    IEventBus,
    ILogger,
    InMemoryDocumentStore,
    StandardLogger,
    Transaction,
)

from . import interfaces as ports


class HotelUnitOfWork(ports.IHotelUnitOfWork):
    """Единица работы для номеров и бронирований."""

    def __init__(
        self,
        store: InMemoryDocumentStore,
        event_bus: Optional[IEventBus] = None,
        logger: Optional[ILogger] = None,
    ):
        self._store = store
        self._event_bus = event_bus
        self._logger = logger or StandardLogger("hotel.uow")
        self._tx: Optional[Transaction] = None
        self._rooms: Optional[DocumentRoomRepository] = None
        self._bookings: Optional[DocumentBookingRepository] = None
        self._events: List[DomainEvent] = []

    @property
    def rooms(self) -> DocumentRoomRepository:
        if self._rooms is None:
            raise DomainException("Единица работы не начата")
        return self._rooms

    @property
    def bookings(self) -> DocumentBookingRepository:
        if self._bookings is None:
            raise DomainException("Единица работы не начата")
        return self._bookings

    def collect_events(self, aggregate: Any) -> None:
        """Забирает доменные события агрегата до фиксации."""
        self._events.extend(aggregate.domain_events)
        aggregate.clear_events()

    def commit(self) -> None:
        """Фиксирует все изменения и публикует события."""
        try:
            revision = self._tx.commit()
        except ConcurrencyException:
            self._events.clear()
            raise

        events, self._events = self._events, []
        self._logger.debug(
            "HotelUnitOfWork committed", revision=revision, events=len(events)
        )
        if self._event_bus is not None:
            for event in events:
                self._event_bus.publish(event)

    def rollback(self) -> None:
        """Откатывает все изменения."""
        pending_writes = 0
        if self._tx is not None and not self._tx.closed:
            pending_writes = len(self._tx.writes)
            self._tx.rollback()
        discarded = len(self._events)
        self._events.clear()
        # Отказ до первой записи - обычный исход проверки, не откат данных
        log = self._logger.warning if pending_writes else self._logger.debug
        log(
            "HotelUnitOfWork rolled back",
            discarded_writes=pending_writes,
            discarded_events=discarded,
        )

    def __enter__(self) -> "HotelUnitOfWork":
        self._tx = self._store.begin()
        self._rooms = DocumentRoomRepository(self._tx)
        self._bookings = DocumentBookingRepository(self._tx)
        self._events = []
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False  # Пробрасываем исключение дальше, если оно было
