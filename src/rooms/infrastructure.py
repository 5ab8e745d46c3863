"""
Инфраструктурный слой контекста номеров.

Репозиторий хранит номера в коллекции "rooms" документного хранилища
и работает строго внутри переданной транзакции.
"""

from typing import List, Optional

from shared_kernel import EntityId, Transaction

from . import interfaces as ports
from .domain import Room, RoomStatus, room_sort_key

ROOMS_COLLECTION = "rooms"


class DocumentRoomRepository(ports.IRoomRepository):
    """Репозиторий номеров поверх транзакции хранилища."""

    def __init__(self, tx: Transaction):
        self._tx = tx

    def get_by_id(self, room_id: EntityId) -> Optional[Room]:
        document = self._tx.get(ROOMS_COLLECTION, str(room_id))
        if document is None:
            return None
        return Room.model_validate(document)

    def add(self, room: Room) -> None:
        if self._tx.get(ROOMS_COLLECTION, str(room.id)) is not None:
            raise ValueError(f"Room with id {room.id} already exists")
        self._save(room)

    def update(self, room: Room) -> None:
        if self._tx.get(ROOMS_COLLECTION, str(room.id)) is None:
            raise KeyError(f"Room with id {room.id} not found")
        self._save(room)

    def delete(self, room_id: EntityId) -> None:
        self._tx.delete(ROOMS_COLLECTION, str(room_id))

    def list_all(self) -> List[Room]:
        rooms = [Room.model_validate(d) for d in self._tx.query(ROOMS_COLLECTION)]
        rooms.sort(key=lambda room: room_sort_key(room.room_number))
        return rooms

    def list_available(self) -> List[Room]:
        return [room for room in self.list_all() if room.status == RoomStatus.AVAILABLE]

    def _save(self, room: Room) -> None:
        self._tx.set(ROOMS_COLLECTION, str(room.id), room.model_dump(mode="json"))
