"""
Доменная модель контекста номеров.

Номер знает только свой статус занятости. Менять статус могут лишь
координаторы заселения и выезда - в одной транзакции с бронированием.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field
from shared_kernel import (
    EntityId,
    InvalidStateException,
    ValidationException,
    generate_id,
)


class RoomStatus(str, Enum):
    """Статусы номера."""

    AVAILABLE = "Available"  # Свободен
    OCCUPIED = "Occupied"  # Занят


class RoomClass(str, Enum):
    """Категория номера (информационная)."""

    AC = "AC"
    NON_AC = "Non-AC"


class Room(BaseModel):
    """Номер в отеле."""

    id: EntityId = Field(default_factory=generate_id)
    room_number: str  # Отображаемый номер (например, "101", "202A")
    room_class: RoomClass = RoomClass.NON_AC
    status: RoomStatus = RoomStatus.AVAILABLE
    created_at: Optional[datetime] = None

    @staticmethod
    def clean_number(room_number: Optional[str]) -> str:
        """Проверяет и нормализует отображаемый номер."""
        cleaned = (room_number or "").strip()
        if not cleaned:
            raise ValidationException("Номер комнаты не может быть пустым")
        return cleaned

    @classmethod
    def create(
        cls,
        room_number: str,
        room_class: RoomClass,
        created_at: Optional[datetime] = None,
    ) -> "Room":
        """Создает новый свободный номер."""
        return cls(
            room_number=cls.clean_number(room_number),
            room_class=RoomClass(room_class),
            created_at=created_at,
        )

    def rename(self, room_number: str, room_class: RoomClass) -> None:
        """Административное изменение; статус не затрагивается."""
        self.room_number = self.clean_number(room_number)
        self.room_class = RoomClass(room_class)

    def is_available(self) -> bool:
        return self.status == RoomStatus.AVAILABLE

    def occupy(self) -> None:
        """Помечает номер как занятый."""
        if self.status != RoomStatus.AVAILABLE:
            raise InvalidStateException(
                f"Невозможно занять номер {self.room_number} "
                f"в статусе {self.status.value}"
            )
        self.status = RoomStatus.OCCUPIED

    def release(self) -> None:
        """Освобождает номер после выезда."""
        if self.status != RoomStatus.OCCUPIED:
            raise InvalidStateException(
                f"Номер {self.room_number} не занят, освобождать нечего"
            )
        self.status = RoomStatus.AVAILABLE


def room_sort_key(room_number: str) -> Tuple[int, int, str]:
    """Ключ сортировки: сначала числовые номера по значению, затем прочие."""
    if room_number.isdigit():
        return (0, int(room_number), room_number)
    return (1, 0, room_number)
