"""
Прикладной слой контекста отчетов.

Представления читают снимки коллекций хранилища и не участвуют в проверке
инвариантов: координаторы всегда перечитывают состояние в своей транзакции.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterator, List, Optional

from bookings.domain import Booking, BookingState
from bookings.infrastructure import BOOKINGS_COLLECTION
from front_desk.application import BookingDTO
from pydantic import BaseModel
from rooms.domain import room_sort_key
from rooms.infrastructure import ROOMS_COLLECTION
from shared_kernel import (
    CycleCalculator,
    EntityId,
    HotelSettings,
    IClock,
    InMemoryDocumentStore,
    InvalidStateException,
    Money,
    NotFoundException,
    SystemClock,
)

from . import domain as calc

# DTO для исходящих данных


class ActiveBookingDTO(BookingDTO):
    """Текущее проживание с вычисленной границей цикла."""

    cycle_end: datetime
    is_overdue: bool


class BookingStatsDTO(BaseModel):
    """Сводка по всем бронированиям."""

    total: int
    active: int
    extended: int
    completed: int
    total_revenue: Decimal
    currency: str
    revenue_by_currency: Dict[str, Decimal]


class RoomPerformanceDTO(BaseModel):
    room_number: str
    total_bookings: int
    total_revenue: Decimal


class DashboardSummaryDTO(BaseModel):
    """Показатели за период по дате заезда."""

    start: date
    end: date
    currency: str
    total_revenue: Decimal
    total_bookings: int
    average_daily_rate: Decimal
    occupancy_rate: float
    revenue_by_date: Dict[date, Decimal]
    bookings_by_room: Dict[str, int]
    performance_by_room: List[RoomPerformanceDTO]


class BillDTO(BaseModel):
    """Данные для счета по закрытому бронированию."""

    booking_id: EntityId
    room_number: str
    guest_name: str
    guest_phone: str
    guest_count: int
    state: BookingState
    check_in: datetime
    check_out: datetime
    nights: int
    amount: Decimal
    currency: str
    stay_started_at: datetime
    stay_total: Decimal
    previous_bookings: List[EntityId]


def _load_bookings(store: InMemoryDocumentStore) -> List[Booking]:
    return [Booking.model_validate(d) for d in store.snapshot(BOOKINGS_COLLECTION)]


# Сервисы приложения


class BookingReadModel:
    """Списки бронирований для отображения."""

    def __init__(
        self,
        store: InMemoryDocumentStore,
        settings: Optional[HotelSettings] = None,
        clock: Optional[IClock] = None,
    ):
        self._store = store
        self._settings = settings or HotelSettings()
        self._clock = clock or SystemClock(self._settings.tz)
        self._cycle = CycleCalculator(self._settings.cutover_hour, self._settings.tz)

    def get(self, booking_id: EntityId) -> BookingDTO:
        for booking in _load_bookings(self._store):
            if booking.id == booking_id:
                return BookingDTO.from_domain(booking)
        raise NotFoundException("Бронирование", booking_id)

    def active_bookings(self) -> List[ActiveBookingDTO]:
        """Текущие проживания, упорядоченные по номеру комнаты."""
        return self._to_active(_load_bookings(self._store))

    def subscribe_active(self) -> Iterator[List[ActiveBookingDTO]]:
        """Живой поток списков текущих проживаний."""
        for documents in self._store.subscribe(
            BOOKINGS_COLLECTION, lambda d: d["state"] == BookingState.ACTIVE.value
        ):
            yield self._to_active(Booking.model_validate(d) for d in documents)

    def history(
        self, search: Optional[str] = None, state: Optional[BookingState] = None
    ) -> List[BookingDTO]:
        """Все бронирования, новые сверху, с поиском и фильтром по состоянию."""
        bookings = [
            booking
            for booking in _load_bookings(self._store)
            if calc.matches_search(booking, search)
            and (state is None or booking.state == state)
        ]
        bookings.sort(key=lambda booking: booking.created_at, reverse=True)
        return [BookingDTO.from_domain(booking) for booking in bookings]

    def stats(self) -> BookingStatsDTO:
        bookings = _load_bookings(self._store)
        counts = calc.count_by_state(bookings)
        revenue = calc.total_revenue(bookings, self._settings.currency)
        return BookingStatsDTO(
            total=len(bookings),
            active=counts[BookingState.ACTIVE],
            extended=counts[BookingState.EXTENDED],
            completed=counts[BookingState.COMPLETED],
            total_revenue=revenue.amount,
            currency=revenue.currency,
            revenue_by_currency={
                currency: money.amount
                for currency, money in calc.revenue_by_currency(bookings).items()
            },
        )

    def _to_active(self, bookings) -> List[ActiveBookingDTO]:
        now = self._clock.now()
        active = [b for b in bookings if b.state == BookingState.ACTIVE]
        active.sort(key=lambda booking: room_sort_key(booking.room_number))
        result = []
        for booking in active:
            cycle_end = self._cycle.cycle_end(booking.check_in)
            result.append(
                ActiveBookingDTO(
                    **BookingDTO.from_domain(booking).model_dump(),
                    cycle_end=cycle_end,
                    is_overdue=self._cycle.is_overdue(cycle_end, now),
                )
            )
        return result


class DashboardService:
    """Агрегированные показатели для панели управления."""

    def __init__(
        self, store: InMemoryDocumentStore, settings: Optional[HotelSettings] = None
    ):
        self._store = store
        self._settings = settings or HotelSettings()

    def summary(self, start: date, end: date) -> DashboardSummaryDTO:
        """Показатели по бронированиям с заездом в интервале дат."""
        if end < start:
            raise ValueError("Дата окончания периода раньше даты начала")

        bookings = calc.checked_in_between(_load_bookings(self._store), start, end)
        rooms_count = len(self._store.snapshot(ROOMS_COLLECTION))
        currency = self._settings.currency
        revenue = calc.total_revenue(bookings, currency)
        # Средняя ставка считается только по суммам в валюте отеля
        priced = [b for b in bookings if b.amount.currency == currency]
        average = revenue / len(priced) if priced else Money.zero(currency)

        by_room: Dict[str, List[Booking]] = {}
        for booking in bookings:
            by_room.setdefault(booking.room_number, []).append(booking)
        performance = [
            RoomPerformanceDTO(
                room_number=room_number,
                total_bookings=len(room_bookings),
                total_revenue=calc.total_revenue(room_bookings, currency).amount,
            )
            for room_number, room_bookings in by_room.items()
        ]

        return DashboardSummaryDTO(
            start=start,
            end=end,
            currency=currency,
            total_revenue=revenue.amount,
            total_bookings=len(bookings),
            average_daily_rate=average.amount,
            occupancy_rate=calc.occupancy_rate(len(bookings), rooms_count, start, end),
            revenue_by_date=calc.revenue_by_date(bookings, currency),
            bookings_by_room=calc.bookings_by_room(bookings),
            performance_by_room=sorted(
                performance, key=lambda p: p.total_revenue, reverse=True
            ),
        )


class BillExporter:
    """Выгрузка данных счета по закрытому бронированию (только чтение)."""

    def __init__(self, store: InMemoryDocumentStore):
        self._store = store

    def export(self, booking_id: EntityId) -> BillDTO:
        bookings_by_id = {b.id: b for b in _load_bookings(self._store)}
        booking = bookings_by_id.get(booking_id)
        if booking is None:
            raise NotFoundException("Бронирование", booking_id)
        if booking.state == BookingState.ACTIVE:
            raise InvalidStateException(
                f"Бронирование {booking_id} еще открыто, счет недоступен"
            )

        chain = calc.stay_chain(booking, bookings_by_id)
        return BillDTO(
            booking_id=booking.id,
            room_number=booking.room_number,
            guest_name=booking.guest_name,
            guest_phone=booking.guest_phone,
            guest_count=booking.guest_count,
            state=booking.state,
            check_in=booking.check_in,
            check_out=booking.check_out,
            nights=calc.nights_charged(booking),
            amount=booking.amount.amount,
            currency=booking.amount.currency,
            stay_started_at=chain[0].check_in,
            stay_total=calc.total_revenue(chain, booking.amount.currency).amount,
            previous_bookings=[b.id for b in chain[:-1]],
        )
