"""
Расчеты для отчетов по бронированиям.

Все функции чистые: принимают снимок бронирований и ничего не меняют.
"""

from collections import defaultdict
from datetime import date, datetime, time
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from bookings.domain import Booking, BookingState
from rooms.domain import room_sort_key
from shared_kernel import EntityId, Money


def total_revenue(bookings: Iterable[Booking], currency: str = "INR") -> Money:
    """
    Сумма по бронированиям в валюте currency.

    Продления учитываются отдельными суммами. Бронирования в других валютах
    не складываются с этой суммой, их показывает revenue_by_currency.
    """
    total = Money.zero(currency)
    for booking in bookings:
        if booking.amount.currency == currency:
            total = total + booking.amount
    return total


def revenue_by_currency(bookings: Iterable[Booking]) -> Dict[str, Money]:
    totals: Dict[str, Money] = {}
    for booking in bookings:
        currency = booking.amount.currency
        totals[currency] = totals.get(currency, Money.zero(currency)) + booking.amount
    return dict(sorted(totals.items()))


def count_by_state(bookings: Iterable[Booking]) -> Dict[BookingState, int]:
    counts = {state: 0 for state in BookingState}
    for booking in bookings:
        counts[booking.state] += 1
    return counts


def stay_chain(
    booking: Booking, bookings_by_id: Mapping[EntityId, Booking]
) -> List[Booking]:
    """Цепочка продлений от первого заезда до указанного бронирования."""
    chain = [booking]
    current = booking
    while current.predecessor_id is not None:
        current = bookings_by_id.get(current.predecessor_id)
        if current is None:
            break
        chain.append(current)
    chain.reverse()
    return chain


def matches_search(booking: Booking, search: Optional[str]) -> bool:
    """Поиск без учета регистра по имени гостя, номеру комнаты и телефону."""
    if not search:
        return True
    needle = search.lower()
    return (
        needle in booking.guest_name.lower()
        or needle in booking.room_number.lower()
        or needle in booking.guest_phone
    )


def checked_in_between(
    bookings: Iterable[Booking], start: date, end: date
) -> List[Booking]:
    """Бронирования с заездом в интервале [начало start, конец end]."""
    period_start = datetime.combine(start, time.min)
    period_end = datetime.combine(end, time.max)
    return [
        booking
        for booking in bookings
        if period_start <= booking.check_in.replace(tzinfo=None) <= period_end
    ]


def occupancy_rate(
    bookings_count: int, rooms_count: int, start: date, end: date
) -> float:
    """Доля занятых номеро-суток в процентах."""
    days = (end - start).days + 1
    room_nights = rooms_count * days
    if room_nights <= 0:
        return 0.0
    return bookings_count / room_nights * 100


def revenue_by_date(
    bookings: Iterable[Booking], currency: str = "INR"
) -> Dict[date, Decimal]:
    revenue: Dict[date, Decimal] = defaultdict(Decimal)
    for booking in bookings:
        if booking.amount.currency != currency:
            continue
        revenue[booking.check_in.date()] += booking.amount.amount
    return dict(sorted(revenue.items()))


def bookings_by_room(bookings: Iterable[Booking]) -> Dict[str, int]:
    """Количество бронирований по номерам, по убыванию."""
    counts: Dict[str, int] = defaultdict(int)
    for booking in bookings:
        counts[booking.room_number] += 1
    return dict(
        sorted(
            counts.items(),
            key=lambda item: (-item[1], room_sort_key(item[0])),
        )
    )


def nights_charged(booking: Booking) -> int:
    """Число расчетных суток, закрытых бронированием (минимум одни)."""
    if booking.check_out is None:
        return 1
    return max(1, (booking.check_out.date() - booking.check_in.date()).days)
