"""
Инфраструктурные компоненты общего ядра: логгер, часы, шина событий,
повторяемое выполнение транзакций.
"""

import json
import logging
from datetime import datetime, timedelta, tzinfo
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from .domain import ConcurrencyException, ConflictException, DomainEvent
from .interfaces import ILogger

T = TypeVar("T")
U = TypeVar("U")


class StandardLogger(ILogger):
    """Логгер поверх модуля logging; контекст выводится как JSON."""

    def __init__(self, name: str = "hotel"):
        self._logger = logging.getLogger(name)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def _log(self, level: int, message: str, context: Dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if context:
            rendered = json.dumps(
                context, default=str, ensure_ascii=False, sort_keys=True
            )
            message = f"{message} | {rendered}"
        self._logger.log(level, message)


class SystemClock:
    """Серверное время."""

    def __init__(self, tz: Optional[tzinfo] = None):
        self._tz = tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


class FixedClock:
    """
    Часы для тестов - возвращают заданный момент.

    Usage:
        clock = FixedClock(datetime(2024, 5, 1, 14, 0))
        clock.advance(hours=23)
    """

    def __init__(self, fixed_dt: datetime):
        self._fixed_dt = fixed_dt

    def now(self) -> datetime:
        return self._fixed_dt

    def set(self, fixed_dt: datetime) -> None:
        self._fixed_dt = fixed_dt

    def advance(self, **delta: float) -> None:
        """Сдвигает время вперед (аргументы как у timedelta)."""
        self._fixed_dt = self._fixed_dt + timedelta(**delta)


class InMemoryEventBus:
    """Реализация шины событий в памяти."""

    def __init__(self, logger: Optional[ILogger] = None):
        self._subscribers: Dict[Type[DomainEvent], List[Callable]] = {}
        self._logger = logger or StandardLogger("hotel.events")

    def publish(self, event: DomainEvent) -> None:
        """Публикует событие."""
        event_type = type(event)
        if event_type not in self._subscribers:
            self._logger.debug(f"No subscribers for event type {event_type.__name__}")
            return

        self._logger.info(
            f"Publishing event: {event_type.__name__}", event=event.model_dump()
        )

        for handler in self._subscribers[event_type]:
            try:
                handler(event)
            except Exception as e:
                # Транзакция уже зафиксирована, ошибка подписчика ее не отменяет
                self._logger.error(
                    f"Error in event handler for {event_type.__name__}",
                    error=str(e),
                    event=event.model_dump(),
                )

    def subscribe(self, event_type: Type[DomainEvent], handler: Callable) -> None:
        """Подписывает обработчик на события указанного типа."""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)
        self._logger.debug(f"Subscribed handler to {event_type.__name__} events")


class TransactionRunner(Generic[U]):
    """
    Выполняет работу в атомарной транзакции с повтором при конфликте.

    Каждая попытка получает новую единицу работы, то есть заново читает
    актуальное состояние. Повторяется только фиксация, проигравшая
    параллельной транзакции; ошибки валидации и состояния пробрасываются сразу.
    """

    def __init__(
        self,
        uow_factory: Callable[[], U],
        max_attempts: int = 3,
        logger: Optional[ILogger] = None,
    ):
        if max_attempts < 1:
            raise ValueError("Количество попыток должно быть положительным")
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts
        self._logger = logger or StandardLogger("hotel.transactions")

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def run(self, operation: str, work: Callable[[U], T]) -> T:
        """Выполняет work(uow); фиксация происходит при выходе из контекста."""
        last_error: Optional[ConcurrencyException] = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                with self._uow_factory() as uow:
                    result = work(uow)
                return result
            except ConcurrencyException as exc:
                last_error = exc
                self._logger.warning(
                    f"{operation}: commit conflict, retrying",
                    attempt=attempt,
                    max_attempts=self._max_attempts,
                    error=str(exc),
                )

        self._logger.error(
            f"{operation}: gave up after concurrent modifications",
            attempts=self._max_attempts,
        )
        raise ConflictException(
            f"Операция '{operation}' не выполнена: данные изменены параллельно "
            f"({self._max_attempts} попыток)"
        ) from last_error
