"""
Основные доменные типы и утилиты общего ядра.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# Общие типы идентификаторов
EntityId = UUID


def generate_id() -> UUID:
    """Генерирует новый UUID."""
    return uuid4()


class Money(BaseModel):
    """Денежная сумма с валютой."""

    amount: Decimal = Field(..., ge=0, description="Сумма денег")
    currency: str = Field(
        default="INR", max_length=3, description="Код валюты (ISO 4217)"
    )

    @classmethod
    def zero(cls, currency: str = "INR") -> "Money":
        return cls(amount=Decimal("0"), currency=currency)

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            raise TypeError("Можно складывать только объекты Money")
        if self.currency != other.currency:
            raise ValueError("Нельзя складывать разные валюты")
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __truediv__(self, divisor: int) -> "Money":
        if divisor <= 0:
            raise ValueError("Делитель должен быть положительным")
        return Money(amount=self.amount / divisor, currency=self.currency)


class DomainEvent(BaseModel):
    """Базовый класс для всех доменных событий."""

    event_id: UUID = Field(default_factory=uuid4)
    occurred_on: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: str


# Общие исключения
class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    pass


class ValidationException(DomainException):
    """Некорректные входные данные. Повторять операцию бессмысленно."""

    pass


class NotFoundException(DomainException):
    """Запрошенный номер или бронирование не существует."""

    def __init__(self, kind: str, entity_id: Optional[EntityId]):
        super().__init__(f"{kind} с ID {entity_id} не найден(о)")
        self.kind = kind
        self.entity_id = entity_id


class InvalidStateException(DomainException):
    """Переход недопустим из текущего состояния."""

    pass


class ConflictException(DomainException):
    """Операция не может быть выполнена из-за параллельного изменения."""

    pass


class ConcurrencyException(DomainException):
    """Исключение при конфликте версий во время фиксации транзакции."""

    pass
