"""
Интерфейсы (порты) для контекста номеров.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Protocol

from shared_kernel import EntityId

from .domain import Room


class IRoomRepository(Protocol):
    """Интерфейс репозитория для номеров."""

    def get_by_id(self, room_id: EntityId) -> Optional[Room]: ...
    def add(self, room: Room) -> None: ...
    def update(self, room: Room) -> None: ...
    def delete(self, room_id: EntityId) -> None: ...
    def list_all(self) -> List[Room]: ...
    def list_available(self) -> List[Room]: ...


class IRoomUnitOfWork(Protocol):
    """Единица работы, достаточная для администрирования номеров."""

    @property
    def rooms(self) -> IRoomRepository: ...

    def __enter__(self) -> IRoomUnitOfWork: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> Optional[bool]: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


RoomUnitOfWorkFactory = Callable[[], IRoomUnitOfWork]
