"""
Доменная модель контекста бронирований.

Содержит бронирование с его жизненным циклом и журнал бронирований -
низкоуровневые записи, которые выполняются только внутри транзакций
координаторов вместе с изменением статуса номера.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field, PrivateAttr
from shared_kernel import (
    DomainEvent,
    EntityId,
    InvalidStateException,
    Money,
    NotFoundException,
    ValidationException,
    generate_id,
)

from .interfaces import IBookingRepository


class BookingState(str, Enum):
    """Состояния бронирования."""

    ACTIVE = "Active"  # Гость проживает, цикл открыт
    EXTENDED = "Extended"  # Цикл закрыт продлением, проживание продолжается
    COMPLETED = "Completed"  # Гость выехал


ALLOWED_TRANSITIONS: Dict[BookingState, FrozenSet[BookingState]] = {
    BookingState.ACTIVE: frozenset({BookingState.EXTENDED, BookingState.COMPLETED}),
    BookingState.EXTENDED: frozenset({BookingState.COMPLETED}),
    BookingState.COMPLETED: frozenset(),
}


class GuestInfo(BaseModel):
    """Данные гостя, общие для всех номеров одного заселения."""

    guest_name: str
    guest_phone: str
    id_proof_ref: Optional[str] = None  # Ссылка на скан документа

    def ensure_complete(self) -> None:
        """Проверяет, что данных достаточно для заселения."""
        if not self.guest_name.strip():
            raise ValidationException("Не указано имя гостя")
        if not self.guest_phone.strip():
            raise ValidationException("Не указан телефон гостя")
        if not self.id_proof_ref:
            raise ValidationException("Не приложен документ, удостоверяющий личность")


class BookingOpened(DomainEvent):
    """Событие открытия бронирования (заселение или продление)."""

    event_type: str = "booking_opened"
    booking_id: EntityId
    room_id: EntityId
    check_in: datetime
    predecessor_id: Optional[EntityId] = None


class BookingExtended(DomainEvent):
    """Событие закрытия цикла продлением."""

    event_type: str = "booking_extended"
    booking_id: EntityId
    room_id: EntityId
    check_out: datetime


class BookingCompleted(DomainEvent):
    """Событие выезда гостя."""

    event_type: str = "booking_completed"
    booking_id: EntityId
    room_id: EntityId
    check_out: datetime


class Booking(BaseModel):
    """Бронирование номера."""

    id: EntityId = Field(default_factory=generate_id)
    room_id: EntityId
    room_number: str  # Денормализованное поле для удобства
    guest_name: str
    guest_phone: str
    guest_count: int = Field(1, ge=1)
    id_proof_ref: Optional[str] = None
    amount: Money
    check_in: datetime
    check_out: Optional[datetime] = None
    state: BookingState = BookingState.ACTIVE
    created_at: datetime
    predecessor_id: Optional[EntityId] = None
    _domain_events: List[DomainEvent] = PrivateAttr(default_factory=list)

    @property
    def domain_events(self) -> List[DomainEvent]:
        """Возвращает список доменных событий."""
        return self._domain_events

    def clear_events(self) -> None:
        """Очищает список доменных событий."""
        self._domain_events = []

    @property
    def guest(self) -> GuestInfo:
        return GuestInfo(
            guest_name=self.guest_name,
            guest_phone=self.guest_phone,
            id_proof_ref=self.id_proof_ref,
        )

    def is_open(self) -> bool:
        """Открытое бронирование удерживает номер."""
        return self.state == BookingState.ACTIVE

    @classmethod
    def open(
        cls,
        room_id: EntityId,
        room_number: str,
        guest: GuestInfo,
        guest_count: int,
        amount: Money,
        check_in: datetime,
        created_at: datetime,
        predecessor_id: Optional[EntityId] = None,
    ) -> "Booking":
        """Создает новое активное бронирование."""
        if guest_count < 1:
            raise ValidationException("Количество гостей должно быть не меньше 1")

        booking = cls(
            room_id=room_id,
            room_number=room_number,
            guest_name=guest.guest_name,
            guest_phone=guest.guest_phone,
            id_proof_ref=guest.id_proof_ref,
            guest_count=guest_count,
            amount=amount,
            check_in=check_in,
            created_at=created_at,
            predecessor_id=predecessor_id,
        )
        booking._domain_events.append(
            BookingOpened(
                booking_id=booking.id,
                room_id=room_id,
                check_in=check_in,
                predecessor_id=predecessor_id,
            )
        )
        return booking

    def successor(
        self, amount: Money, check_in: datetime, created_at: datetime
    ) -> "Booking":
        """Создает продолжение проживания в том же номере."""
        return Booking.open(
            room_id=self.room_id,
            room_number=self.room_number,
            guest=self.guest,
            guest_count=self.guest_count,
            amount=amount,
            check_in=check_in,
            created_at=created_at,
            predecessor_id=self.id,
        )

    def transition_to(
        self, new_state: BookingState, check_out: Optional[datetime] = None
    ) -> None:
        """Переводит бронирование в новое состояние."""
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidStateException(
                f"Невозможно перевести бронирование из {self.state.value} "
                f"в {new_state.value}"
            )

        if check_out is not None:
            if check_out < self.check_in:
                raise ValidationException("Время выезда раньше времени заезда")
            self.check_out = check_out
        elif self.check_out is None:
            raise ValidationException(
                f"Для перехода в {new_state.value} требуется время выезда"
            )

        self.state = new_state
        event_type = (
            BookingExtended if new_state == BookingState.EXTENDED else BookingCompleted
        )
        self._domain_events.append(
            event_type(
                booking_id=self.id, room_id=self.room_id, check_out=self.check_out
            )
        )


class BookingLedger:
    """Журнал бронирований: вставки и переходы состояний."""

    def __init__(self, booking_repository: IBookingRepository):
        self.booking_repository = booking_repository

    def get(self, booking_id: EntityId) -> Booking:
        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Бронирование", booking_id)
        return booking

    def insert(self, booking: Booking) -> Booking:
        self.booking_repository.add(booking)
        return booking

    def transition(
        self,
        booking_id: EntityId,
        new_state: BookingState,
        check_out: Optional[datetime] = None,
    ) -> Booking:
        booking = self.get(booking_id)
        booking.transition_to(new_state, check_out)
        self.booking_repository.update(booking)
        return booking

    def successor_of(self, booking_id: EntityId) -> Optional[Booking]:
        """Находит бронирование, продолжающее указанное."""
        return self.booking_repository.find_successor(booking_id)
