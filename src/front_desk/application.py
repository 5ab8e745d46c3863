"""
Прикладной слой контекста стойки регистрации.

Координаторы - единственные, кто меняет статус номеров. Каждая операция
выполняется одной атомарной транзакцией над номерами и бронированиями:
либо применяются все записи, либо ни одной. Проигравшая параллельной
транзакции фиксация повторяется ограниченное число раз.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence, Tuple, Union

from bookings.domain import Booking, BookingLedger, BookingState, GuestInfo
from pydantic import BaseModel
from rooms.domain import Room
from shared_kernel import (
    ConflictException,
    CycleCalculator,
    EntityId,
    HotelSettings,
    IClock,
    ILogger,
    InvalidStateException,
    Money,
    NotFoundException,
    StandardLogger,
    SystemClock,
    TransactionRunner,
    ValidationException,
)

from . import interfaces as ports
from .domain import ReservationPolicy, RoomAllocation

# DTO для исходящих данных


class BookingDTO(BaseModel):
    """DTO для представления бронирования."""

    id: EntityId
    room_id: EntityId
    room_number: str
    guest_name: str
    guest_phone: str
    guest_count: int
    id_proof_ref: Optional[str]
    amount: Decimal
    currency: str
    check_in: datetime
    check_out: Optional[datetime]
    state: BookingState
    created_at: datetime
    predecessor_id: Optional[EntityId]

    @classmethod
    def from_domain(cls, booking: Booking) -> "BookingDTO":
        """Создает DTO из доменной модели."""
        return cls(
            id=booking.id,
            room_id=booking.room_id,
            room_number=booking.room_number,
            guest_name=booking.guest_name,
            guest_phone=booking.guest_phone,
            guest_count=booking.guest_count,
            id_proof_ref=booking.id_proof_ref,
            amount=booking.amount.amount,
            currency=booking.amount.currency,
            check_in=booking.check_in,
            check_out=booking.check_out,
            state=booking.state,
            created_at=booking.created_at,
            predecessor_id=booking.predecessor_id,
        )


class ExtensionResultDTO(BaseModel):
    """Результат продления: закрытое бронирование и его продолжение."""

    closed_booking: BookingDTO
    new_booking: BookingDTO


# Сервисы приложения


class ReservationCoordinator:
    """Атомарно заселяет гостя в один или несколько номеров."""

    def __init__(
        self,
        uow_factory: ports.HotelUnitOfWorkFactory,
        settings: Optional[HotelSettings] = None,
        clock: Optional[IClock] = None,
        logger: Optional[ILogger] = None,
    ):
        self._settings = settings or HotelSettings()
        self._clock = clock or SystemClock(self._settings.tz)
        self._logger = logger or StandardLogger("hotel.front_desk")
        self._policy = ReservationPolicy(self._settings.max_rooms_per_reservation)
        self._runner = TransactionRunner(
            uow_factory, self._settings.max_commit_attempts, self._logger
        )

    def reserve(
        self,
        guest: GuestInfo,
        allocations: Sequence[RoomAllocation],
        common_amount: Optional[Decimal] = None,
    ) -> List[BookingDTO]:
        """
        Заселяет гостя во все указанные номера или ни в один.

        Raises:
            ValidationException: некорректный запрос (без повторов)
            NotFoundException: один из номеров не существует
            ConflictException: номер уже занят или попытки фиксации исчерпаны
        """
        self._policy.validate(guest, allocations, common_amount)

        def work(uow: ports.IHotelUnitOfWork) -> List[Booking]:
            # Номера перечитываются внутри транзакции, а не берутся из кэша
            rooms: List[Room] = []
            for allocation in allocations:
                room = uow.rooms.get_by_id(allocation.room_id)
                if room is None:
                    raise NotFoundException("Номер", allocation.room_id)
                if not room.is_available():
                    raise ConflictException(
                        f"Номер {room.room_number} уже занят, заселение отменено"
                    )
                rooms.append(room)

            ledger = BookingLedger(uow.bookings)
            now = self._clock.now()
            bookings: List[Booking] = []
            for room, allocation in zip(rooms, allocations):
                amount = self._policy.resolve_amount(allocation, common_amount)
                booking = Booking.open(
                    room_id=room.id,
                    room_number=room.room_number,
                    guest=guest,
                    guest_count=allocation.guest_count,
                    amount=Money(amount=amount, currency=self._settings.currency),
                    check_in=now,
                    created_at=now,
                )
                ledger.insert(booking)
                room.occupy()
                uow.rooms.update(room)
                uow.collect_events(booking)
                bookings.append(booking)
            return bookings

        bookings = self._runner.run("reserve", work)
        self._logger.info(
            "Rooms reserved",
            guest_name=guest.guest_name,
            rooms=[booking.room_number for booking in bookings],
            bookings=[booking.id for booking in bookings],
        )
        return [BookingDTO.from_domain(booking) for booking in bookings]


class StayCoordinator:
    """Атомарно выполняет выезд и продление проживания."""

    def __init__(
        self,
        uow_factory: ports.HotelUnitOfWorkFactory,
        settings: Optional[HotelSettings] = None,
        clock: Optional[IClock] = None,
        logger: Optional[ILogger] = None,
    ):
        self._settings = settings or HotelSettings()
        self._clock = clock or SystemClock(self._settings.tz)
        self._logger = logger or StandardLogger("hotel.front_desk")
        self._cycle = CycleCalculator(self._settings.cutover_hour, self._settings.tz)
        self._runner = TransactionRunner(
            uow_factory, self._settings.max_commit_attempts, self._logger
        )

    def checkout(self, booking_id: EntityId) -> BookingDTO:
        """Выезд гостя сейчас: бронирование завершается, номер освобождается."""

        def now_or_check_in(booking: Booking) -> datetime:
            # Продление до границы цикла открывает бронирование в будущем
            return max(self._clock.now(), booking.check_in)

        return self._complete(booking_id, "checkout", now_or_check_in)

    def checkout_at_cycle_end(self, booking_id: EntityId) -> BookingDTO:
        """
        Выезд, задним числом отмеченный на границе цикла.

        Применяется, когда гость уже уехал, а администратор отмечает это
        позже. Допустимо только для просроченного проживания.
        """

        def at_cycle_end(booking: Booking) -> datetime:
            cycle_end = self._cycle.cycle_end(booking.check_in)
            if not self._cycle.is_overdue(cycle_end, self._clock.now()):
                raise InvalidStateException(
                    f"Цикл бронирования {booking.id} еще не истек ({cycle_end})"
                )
            return cycle_end

        return self._complete(booking_id, "checkout at cycle end", at_cycle_end)

    def extend(
        self, booking_id: EntityId, new_amount: Union[Decimal, int, str]
    ) -> ExtensionResultDTO:
        """
        Продлевает проживание еще на один цикл.

        Текущее бронирование закрывается на границе цикла, в том же номере
        открывается продолжение. Номер остается занятым.
        """
        amount = self._parse_amount(new_amount)

        def work(uow: ports.IHotelUnitOfWork) -> Tuple[Booking, Booking]:
            ledger = BookingLedger(uow.bookings)
            current = self._open_booking(ledger, booking_id)
            boundary = self._cycle.cycle_end(current.check_in)

            closed = ledger.transition(current.id, BookingState.EXTENDED, boundary)
            successor = closed.successor(
                amount=Money(amount=amount, currency=closed.amount.currency),
                check_in=boundary,
                created_at=self._clock.now(),
            )
            ledger.insert(successor)
            uow.collect_events(closed)
            uow.collect_events(successor)
            return closed, successor

        closed, successor = self._runner.run("extend", work)
        self._logger.info(
            "Stay extended",
            booking_id=closed.id,
            new_booking_id=successor.id,
            room_number=closed.room_number,
            boundary=successor.check_in,
        )
        return ExtensionResultDTO(
            closed_booking=BookingDTO.from_domain(closed),
            new_booking=BookingDTO.from_domain(successor),
        )

    def _complete(
        self, booking_id: EntityId, operation: str, check_out_for
    ) -> BookingDTO:
        def work(uow: ports.IHotelUnitOfWork) -> Booking:
            ledger = BookingLedger(uow.bookings)
            booking = self._open_booking(ledger, booking_id)
            room = uow.rooms.get_by_id(booking.room_id)
            if room is None:
                raise NotFoundException("Номер", booking.room_id)

            booking = ledger.transition(
                booking.id, BookingState.COMPLETED, check_out_for(booking)
            )
            room.release()
            uow.rooms.update(room)
            uow.collect_events(booking)
            return booking

        booking = self._runner.run(operation, work)
        self._logger.info(
            "Guest checked out",
            operation=operation,
            booking_id=booking.id,
            room_number=booking.room_number,
            check_out=booking.check_out,
        )
        return BookingDTO.from_domain(booking)

    @staticmethod
    def _open_booking(ledger: BookingLedger, booking_id: EntityId) -> Booking:
        booking = ledger.get(booking_id)
        if booking.state == BookingState.COMPLETED:
            raise InvalidStateException(f"Бронирование {booking_id} уже завершено")
        if booking.state == BookingState.EXTENDED:
            successor = ledger.successor_of(booking_id)
            raise InvalidStateException(
                f"Бронирование {booking_id} продлено, проживание продолжается "
                f"в бронировании {successor.id if successor else '?'}"
            )
        return booking

    @staticmethod
    def _parse_amount(value: Union[Decimal, int, str]) -> Decimal:
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValidationException(
                f"Некорректная сумма продления: {value!r}"
            ) from exc
        if not amount.is_finite() or amount <= 0:
            raise ValidationException("Сумма продления должна быть больше нуля")
        return amount
