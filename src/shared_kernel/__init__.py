"""
Общее ядро (Shared Kernel) движка бронирования номеров.

Содержит общие типы данных, исключения, расчет цикла проживания,
настройки и транзакционное хранилище, используемые всеми контекстами.
"""

from .config import HotelSettings
from .cycle import DEFAULT_CUTOVER_HOUR, CycleCalculator
from .domain import (
    ConcurrencyException,
    ConflictException,
    DomainEvent,
    # Исключения
    DomainException,
    # Базовые типы
    EntityId,
    InvalidStateException,
    # Основные классы
    Money,
    NotFoundException,
    ValidationException,
    generate_id,
)
from .infrastructure import (
    FixedClock,
    InMemoryEventBus,
    StandardLogger,
    SystemClock,
    TransactionRunner,
)
from .interfaces import IClock, IEventBus, ILogger
from .store import InMemoryDocumentStore, Transaction

__all__ = [
    # Базовые типы
    "EntityId",
    "generate_id",
    # Основные классы
    "Money",
    "DomainEvent",
    "CycleCalculator",
    "DEFAULT_CUTOVER_HOUR",
    "HotelSettings",
    # Исключения
    "DomainException",
    "ValidationException",
    "NotFoundException",
    "InvalidStateException",
    "ConflictException",
    "ConcurrencyException",
    # Порты и инфраструктура
    "ILogger",
    "IClock",
    "IEventBus",
    "StandardLogger",
    "SystemClock",
    "FixedClock",
    "InMemoryEventBus",
    "TransactionRunner",
    "InMemoryDocumentStore",
    "Transaction",
]
