"""
Прикладной слой контекста номеров.

Реестр номеров - простой CRUD. Статус занятости здесь не меняется:
это делают только координаторы контекста front_desk.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from shared_kernel import (
    ConflictException,
    EntityId,
    IClock,
    ILogger,
    NotFoundException,
    StandardLogger,
    SystemClock,
    TransactionRunner,
)

from . import interfaces as ports
from .domain import Room, RoomClass, RoomStatus


class RoomDTO(BaseModel):
    """DTO для представления номера."""

    id: EntityId
    room_number: str
    room_class: RoomClass
    status: RoomStatus
    created_at: Optional[datetime]

    @classmethod
    def from_domain(cls, room: Room) -> "RoomDTO":
        """Создает DTO из доменной модели."""
        return cls(
            id=room.id,
            room_number=room.room_number,
            room_class=room.room_class,
            status=room.status,
            created_at=room.created_at,
        )


class RoomRegistry:
    """Сервис приложения для администрирования номеров."""

    def __init__(
        self,
        uow_factory: ports.RoomUnitOfWorkFactory,
        clock: Optional[IClock] = None,
        logger: Optional[ILogger] = None,
        max_attempts: int = 3,
    ):
        self._uow_factory = uow_factory
        self._clock = clock or SystemClock()
        self._logger = logger or StandardLogger("hotel.rooms")
        self._runner = TransactionRunner(uow_factory, max_attempts, self._logger)

    def create(
        self, room_number: str, room_class: RoomClass = RoomClass.NON_AC
    ) -> RoomDTO:
        """Добавляет новый свободный номер."""
        room = Room.create(room_number, room_class, created_at=self._clock.now())
        self._runner.run("create room", lambda uow: uow.rooms.add(room))
        self._logger.info(
            "Room created", room_id=room.id, room_number=room.room_number
        )
        return RoomDTO.from_domain(room)

    def update(
        self, room_id: EntityId, room_number: str, room_class: RoomClass
    ) -> RoomDTO:
        """Меняет отображаемый номер и категорию."""

        def work(uow: ports.IRoomUnitOfWork) -> Room:
            room = self._get_room(uow, room_id)
            room.rename(room_number, room_class)
            uow.rooms.update(room)
            return room

        room = self._runner.run("update room", work)
        self._logger.info(
            "Room updated", room_id=room.id, room_number=room.room_number
        )
        return RoomDTO.from_domain(room)

    def delete(self, room_id: EntityId) -> None:
        """Удаляет номер; занятый номер удалить нельзя."""

        def work(uow: ports.IRoomUnitOfWork) -> None:
            room = self._get_room(uow, room_id)
            if room.status == RoomStatus.OCCUPIED:
                raise ConflictException(
                    f"Номер {room.room_number} занят и не может быть удален"
                )
            uow.rooms.delete(room_id)

        self._runner.run("delete room", work)
        self._logger.info("Room deleted", room_id=room_id)

    def get(self, room_id: EntityId) -> RoomDTO:
        """Возвращает информацию о номере."""
        with self._uow_factory() as uow:
            return RoomDTO.from_domain(self._get_room(uow, room_id))

    def list_available(self) -> List[RoomDTO]:
        """Возвращает снимок свободных номеров."""
        with self._uow_factory() as uow:
            return [RoomDTO.from_domain(room) for room in uow.rooms.list_available()]

    def list_all(self) -> List[RoomDTO]:
        """Возвращает снимок всех номеров, упорядоченных по номеру."""
        with self._uow_factory() as uow:
            return [RoomDTO.from_domain(room) for room in uow.rooms.list_all()]

    @staticmethod
    def _get_room(uow: ports.IRoomUnitOfWork, room_id: EntityId) -> Room:
        room = uow.rooms.get_by_id(room_id)
        if room is None:
            raise NotFoundException("Номер", room_id)
        return room
