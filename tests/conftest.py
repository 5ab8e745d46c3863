"""
Конфигурация тестов для pytest.
Добавляет каталог src в PYTHONPATH и собирает общие фикстуры.
"""
import sys
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Callable, Dict, List

import pytest

# Добавляем каталог с исходниками в PYTHONPATH
root_dir = str(Path(__file__).parent.parent / "src")
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)

from bookings.domain import Booking, BookingState, GuestInfo  # noqa: E402
from front_desk.application import ReservationCoordinator, StayCoordinator  # noqa: E402
from front_desk.infrastructure import HotelUnitOfWork  # noqa: E402
from reporting.application import (  # noqa: E402
    BillExporter,
    BookingReadModel,
    DashboardService,
)
from rooms.application import RoomDTO, RoomRegistry  # noqa: E402
from rooms.domain import Room, RoomClass, RoomStatus  # noqa: E402
from shared_kernel import (  # noqa: E402
    FixedClock,
    HotelSettings,
    InMemoryDocumentStore,
    InMemoryEventBus,
)

# Первый день проживания в тестах: 1 мая 2024, 14:00
DAY1_14H = datetime(2024, 5, 1, 14, 0)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(DAY1_14H)


@pytest.fixture
def settings() -> HotelSettings:
    return HotelSettings()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def uow_factory(store, event_bus):
    return partial(HotelUnitOfWork, store, event_bus)


@pytest.fixture
def registry(uow_factory, clock) -> RoomRegistry:
    return RoomRegistry(uow_factory, clock)


@pytest.fixture
def reservations(uow_factory, settings, clock) -> ReservationCoordinator:
    return ReservationCoordinator(uow_factory, settings, clock)


@pytest.fixture
def stays(uow_factory, settings, clock) -> StayCoordinator:
    return StayCoordinator(uow_factory, settings, clock)


@pytest.fixture
def read_model(store, settings, clock) -> BookingReadModel:
    return BookingReadModel(store, settings, clock)


@pytest.fixture
def dashboard(store, settings) -> DashboardService:
    return DashboardService(store, settings)


@pytest.fixture
def bills(store) -> BillExporter:
    return BillExporter(store)


@pytest.fixture
def rooms(registry) -> List[RoomDTO]:
    """Три свободных номера: 101, 102 и 103."""
    return [
        registry.create("101", RoomClass.AC),
        registry.create("102", RoomClass.NON_AC),
        registry.create("103", RoomClass.AC),
    ]


@pytest.fixture
def guest() -> GuestInfo:
    return GuestInfo(
        guest_name="Гость А",
        guest_phone="+919800000001",
        id_proof_ref="blob://id-proofs/guest-a.jpg",
    )


@pytest.fixture
def check_invariants(store) -> Callable[[], None]:
    """
    Проверяет инварианты зафиксированного состояния:
    - номер занят тогда и только тогда, когда на нем ровно одно Active
    - у Extended ровно одно продолжение, незакрыт только хвост цепочки
    """

    def check() -> None:
        rooms = [Room.model_validate(d) for d in store.snapshot("rooms")]
        bookings = [Booking.model_validate(d) for d in store.snapshot("bookings")]

        active_by_room: Dict = {}
        for booking in bookings:
            if booking.state == BookingState.ACTIVE:
                count = active_by_room.get(booking.room_id, 0)
                active_by_room[booking.room_id] = count + 1

        for room in rooms:
            active = active_by_room.get(room.id, 0)
            if room.status == RoomStatus.OCCUPIED:
                assert active == 1, f"Номер {room.room_number}: {active} Active"
            else:
                assert active == 0, f"Номер {room.room_number} свободен, но Active"

        successors: Dict = {}
        for booking in bookings:
            if booking.predecessor_id is not None:
                successors.setdefault(booking.predecessor_id, []).append(booking)

        for booking in bookings:
            following = successors.get(booking.id, [])
            if booking.state == BookingState.EXTENDED:
                assert len(following) == 1
                assert booking.check_out == following[0].check_in
            else:
                assert following == []
            if booking.check_out is None:
                assert booking.state == BookingState.ACTIVE

    return check


class InterferingUnitOfWork(HotelUnitOfWork):
    """
    Единица работы, перед фиксацией которой выполняется параллельная запись.

    Позволяет детерминированно воспроизвести проигрыш фиксации.
    """

    def __init__(self, store, event_bus, interfere: Callable[[], None], budget: Dict):
        super().__init__(store, event_bus)
        self._interfere = interfere
        self._budget = budget

    def commit(self) -> None:
        if self._budget["remaining"] > 0:
            self._budget["remaining"] -= 1
            self._interfere()
        super().commit()


@pytest.fixture
def interfering_factory(store, event_bus):
    """Фабрика единиц работы, проигрывающих фиксацию times раз подряд."""

    def make(interfere: Callable[[], None], times: int):
        budget = {"remaining": times}
        return partial(InterferingUnitOfWork, store, event_bus, interfere, budget)

    return make
