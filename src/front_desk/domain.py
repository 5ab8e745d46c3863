"""
Доменные правила стойки регистрации.
"""

from decimal import Decimal
from typing import Optional, Sequence

from bookings.domain import GuestInfo
from pydantic import BaseModel
from shared_kernel import EntityId, ValidationException


class RoomAllocation(BaseModel):
    """Номер, выделяемый гостю при заселении."""

    room_id: EntityId
    guest_count: int = 1
    amount: Optional[Decimal] = None  # Если не задано - общая сумма


class ReservationPolicy:
    """Политики и бизнес-правила для заселения."""

    def __init__(self, max_rooms: int = 10):
        self.max_rooms = max_rooms

    def validate(
        self,
        guest: GuestInfo,
        allocations: Sequence[RoomAllocation],
        common_amount: Optional[Decimal] = None,
    ) -> None:
        """Проверяет запрос до начала транзакции."""
        if not allocations:
            raise ValidationException("Не выбрано ни одного номера")

        if len(allocations) > self.max_rooms:
            raise ValidationException(
                f"За одно заселение можно занять не более {self.max_rooms} номеров"
            )

        room_ids = [allocation.room_id for allocation in allocations]
        if len(set(room_ids)) != len(room_ids):
            raise ValidationException("Номер указан в заселении более одного раза")

        guest.ensure_complete()

        for allocation in allocations:
            if allocation.guest_count < 1:
                raise ValidationException("Количество гостей должно быть не меньше 1")
            amount = self.resolve_amount(allocation, common_amount)
            if not amount.is_finite() or amount < 0:
                raise ValidationException(
                    f"Некорректная сумма {amount} для номера {allocation.room_id}"
                )

    @staticmethod
    def resolve_amount(
        allocation: RoomAllocation, common_amount: Optional[Decimal] = None
    ) -> Decimal:
        """Сумма номера: своя, иначе общая, иначе ноль."""
        if allocation.amount is not None:
            return allocation.amount
        if common_amount is not None:
            return common_amount
        return Decimal("0")
