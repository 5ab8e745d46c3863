from functools import partial
from typing import Any, Dict, Optional

from front_desk.application import ReservationCoordinator, StayCoordinator
from front_desk.infrastructure import HotelUnitOfWork
from reporting.application import BillExporter, BookingReadModel, DashboardService
from rooms.application import RoomRegistry
from shared_kernel import (
    HotelSettings,
    IClock,
    ILogger,
    InMemoryDocumentStore,
    InMemoryEventBus,
    StandardLogger,
    SystemClock,
)


def bootstrap_app(
    settings: Optional[HotelSettings] = None,
    store: Optional[InMemoryDocumentStore] = None,
    clock: Optional[IClock] = None,
    logger: Optional[ILogger] = None,
) -> Dict[str, Any]:
    """Создает и настраивает все компоненты приложения."""
    settings = settings or HotelSettings.from_env()
    store = store or InMemoryDocumentStore()
    clock = clock or SystemClock(settings.tz)
    logger = logger or StandardLogger("hotel")

    # 1. Общая шина событий и фабрика единиц работы над одним хранилищем
    event_bus = InMemoryEventBus(logger)
    uow_factory = partial(HotelUnitOfWork, store, event_bus, logger)

    # 2. Сервисы, меняющие состояние
    room_registry = RoomRegistry(
        uow_factory, clock, logger, max_attempts=settings.max_commit_attempts
    )
    reservations = ReservationCoordinator(uow_factory, settings, clock, logger)
    stays = StayCoordinator(uow_factory, settings, clock, logger)

    # 3. Представления только для чтения
    read_model = BookingReadModel(store, settings, clock)
    dashboard = DashboardService(store, settings)
    bills = BillExporter(store)

    return {
        "settings": settings,
        "store": store,
        "event_bus": event_bus,
        "rooms": room_registry,
        "reservations": reservations,
        "stays": stays,
        "read_model": read_model,
        "dashboard": dashboard,
        "bills": bills,
    }
