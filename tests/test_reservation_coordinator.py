"""
Тесты атомарного заселения в несколько номеров.
"""
import threading
from decimal import Decimal
from uuid import uuid4

import pytest
from bookings.domain import BookingOpened, BookingState, GuestInfo
from front_desk.application import ReservationCoordinator
from front_desk.domain import RoomAllocation
from rooms.domain import RoomClass, RoomStatus
from shared_kernel import (
    ConflictException,
    HotelSettings,
    NotFoundException,
    ValidationException,
)


def _statuses(registry):
    return {room.room_number: room.status for room in registry.list_all()}


class TestReserve:
    """Тесты успешного заселения."""

    def test_reserve_two_of_three_rooms(
        self, reservations, registry, read_model, rooms, guest, clock, check_invariants
    ):
        bookings = reservations.reserve(
            guest,
            [
                RoomAllocation(
                    room_id=rooms[0].id, guest_count=2, amount=Decimal("1000")
                ),
                RoomAllocation(room_id=rooms[1].id, amount=Decimal("1200")),
            ],
        )

        assert [b.room_number for b in bookings] == ["101", "102"]
        assert all(b.state == BookingState.ACTIVE for b in bookings)
        assert all(b.check_in == clock.now() for b in bookings)
        assert all(b.check_out is None for b in bookings)
        assert [b.guest_count for b in bookings] == [2, 1]
        assert bookings[0].guest_name == "Гость А"
        assert bookings[0].id_proof_ref == "blob://id-proofs/guest-a.jpg"
        assert _statuses(registry) == {
            "101": RoomStatus.OCCUPIED,
            "102": RoomStatus.OCCUPIED,
            "103": RoomStatus.AVAILABLE,
        }
        stats = read_model.stats()
        assert stats.active == 2
        assert stats.total_revenue == Decimal("2200")
        check_invariants()

    def test_common_amount_fills_missing_amounts(self, reservations, rooms, guest):
        bookings = reservations.reserve(
            guest,
            [
                RoomAllocation(room_id=rooms[0].id),
                RoomAllocation(room_id=rooms[1].id, amount=Decimal("1500")),
            ],
            common_amount=Decimal("900"),
        )

        assert [b.amount for b in bookings] == [Decimal("900"), Decimal("1500")]

    def test_amount_defaults_to_zero(self, reservations, rooms, guest, settings):
        (booking,) = reservations.reserve(guest, [RoomAllocation(room_id=rooms[2].id)])

        assert booking.amount == Decimal("0")
        assert booking.currency == settings.currency

    def test_events_published_after_commit(
        self, reservations, event_bus, rooms, guest
    ):
        opened = []
        event_bus.subscribe(BookingOpened, opened.append)

        bookings = reservations.reserve(
            guest,
            [
                RoomAllocation(room_id=rooms[0].id, amount=Decimal("1000")),
                RoomAllocation(room_id=rooms[1].id, amount=Decimal("1000")),
            ],
        )

        assert {e.booking_id for e in opened} == {b.id for b in bookings}


class TestReserveValidation:
    """Некорректные запросы отклоняются до любых записей."""

    @pytest.fixture
    def revision(self, store, rooms):
        return store.revision

    def test_no_rooms(self, reservations, store, revision, guest):
        with pytest.raises(ValidationException):
            reservations.reserve(guest, [])

        assert store.revision == revision

    def test_duplicate_room(self, reservations, store, revision, rooms, guest):
        allocation = RoomAllocation(room_id=rooms[0].id, amount=Decimal("1000"))

        with pytest.raises(ValidationException):
            reservations.reserve(guest, [allocation, allocation])

        assert store.revision == revision

    def test_too_many_rooms(self, uow_factory, clock, store, revision, rooms, guest):
        coordinator = ReservationCoordinator(
            uow_factory, HotelSettings(max_rooms_per_reservation=2), clock
        )

        with pytest.raises(ValidationException):
            coordinator.reserve(
                guest, [RoomAllocation(room_id=room.id) for room in rooms]
            )

        assert store.revision == revision

    @pytest.mark.parametrize(
        "guest_fields",
        [
            {"guest_name": "", "guest_phone": "+91", "id_proof_ref": "ref"},
            {"guest_name": "Гость", "guest_phone": " ", "id_proof_ref": "ref"},
            {"guest_name": "Гость", "guest_phone": "+91", "id_proof_ref": None},
        ],
    )
    def test_incomplete_guest(self, reservations, store, revision, rooms, guest_fields):
        with pytest.raises(ValidationException):
            reservations.reserve(
                GuestInfo(**guest_fields), [RoomAllocation(room_id=rooms[0].id)]
            )

        assert store.revision == revision

    def test_guest_count_below_one(self, reservations, store, revision, rooms, guest):
        with pytest.raises(ValidationException):
            reservations.reserve(
                guest, [RoomAllocation(room_id=rooms[0].id, guest_count=0)]
            )

        assert store.revision == revision

    def test_negative_amount(self, reservations, store, revision, rooms, guest):
        with pytest.raises(ValidationException):
            reservations.reserve(
                guest,
                [
                    RoomAllocation(room_id=rooms[0].id, amount=Decimal("1000")),
                    RoomAllocation(room_id=rooms[1].id, amount=Decimal("-1")),
                ],
            )

        assert store.revision == revision


class TestReserveIsAllOrNothing:
    """Заселение применяется целиком или не применяется вовсе."""

    def test_occupied_room_aborts_whole_batch(
        self, reservations, registry, read_model, rooms, guest, check_invariants
    ):
        reservations.reserve(guest, [RoomAllocation(room_id=rooms[1].id)])

        with pytest.raises(ConflictException):
            reservations.reserve(
                guest,
                [
                    RoomAllocation(room_id=rooms[0].id),
                    RoomAllocation(room_id=rooms[1].id),
                ],
            )

        assert _statuses(registry)["101"] == RoomStatus.AVAILABLE
        assert read_model.stats().total == 1
        check_invariants()

    def test_unknown_room_aborts_whole_batch(
        self, reservations, registry, read_model, rooms, guest
    ):
        with pytest.raises(NotFoundException):
            reservations.reserve(
                guest,
                [
                    RoomAllocation(room_id=rooms[0].id),
                    RoomAllocation(room_id=uuid4()),
                ],
            )

        assert _statuses(registry)["101"] == RoomStatus.AVAILABLE
        assert read_model.stats().total == 0


class TestReserveConcurrency:
    """Параллельные заселения в один номер."""

    def test_only_one_of_concurrent_reservations_wins(
        self, reservations, rooms, guest, read_model, check_invariants
    ):
        barrier = threading.Barrier(2)
        results = []
        errors = []

        def attempt():
            barrier.wait()
            try:
                results.append(
                    reservations.reserve(guest, [RoomAllocation(room_id=rooms[0].id)])
                )
            except ConflictException as exc:
                errors.append(exc)

        threads = [threading.Thread(target=attempt) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert len(results) == 1
        assert len(errors) == 1
        assert read_model.stats().active == 1
        check_invariants()

    def test_lost_commit_is_retried(
        self, interfering_factory, registry, settings, clock, rooms, guest,
        event_bus, check_invariants,
    ):
        opened = []
        event_bus.subscribe(BookingOpened, opened.append)
        # Параллельная правка номера перед первыми двумя фиксациями
        factory = interfering_factory(
            lambda: registry.update(rooms[0].id, "101", RoomClass.AC), times=2
        )
        coordinator = ReservationCoordinator(factory, settings, clock)

        (booking,) = coordinator.reserve(guest, [RoomAllocation(room_id=rooms[0].id)])

        assert registry.get(rooms[0].id).status == RoomStatus.OCCUPIED
        assert [e.booking_id for e in opened] == [booking.id]
        check_invariants()

    def test_conflict_after_exhausted_attempts(
        self, interfering_factory, registry, settings, clock, rooms, guest,
        read_model, check_invariants,
    ):
        factory = interfering_factory(
            lambda: registry.update(rooms[0].id, "101", RoomClass.AC),
            times=settings.max_commit_attempts,
        )
        coordinator = ReservationCoordinator(factory, settings, clock)

        with pytest.raises(ConflictException):
            coordinator.reserve(guest, [RoomAllocation(room_id=rooms[0].id)])

        assert registry.get(rooms[0].id).status == RoomStatus.AVAILABLE
        assert read_model.stats().total == 0
        check_invariants()
