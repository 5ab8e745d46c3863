"""
Транзакционное хранилище документов в памяти.

Хранилище повторяет модель оптимистичных транзакций документной БД:
транзакция запоминает ревизии всего, что прочитала, буферизует записи
и при фиксации проверяет, что прочитанное не изменилось. Если изменилось,
фиксация отклоняется целиком и ни одна запись не применяется.
"""

import copy
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

from .domain import ConcurrencyException, DomainException

Document = Dict[str, Any]
DocumentFilter = Callable[[Document], bool]

# Ревизия отсутствующего документа
ABSENT = 0

# Маркер удаления в буфере записей
_DELETED = object()


class InMemoryDocumentStore:
    """Набор коллекций документов с ревизиями и живыми подписками."""

    def __init__(self) -> None:
        # коллекция -> id -> (ревизия, документ)
        self._collections: Dict[str, Dict[str, Tuple[int, Document]]] = defaultdict(
            dict
        )
        self._collection_revisions: Dict[str, int] = defaultdict(int)
        self._revision = 0
        self._changed = threading.Condition()

    @property
    def revision(self) -> int:
        """Глобальная ревизия, растет с каждой успешной фиксацией."""
        return self._revision

    def begin(self) -> "Transaction":
        """Начинает новую транзакцию."""
        return Transaction(self)

    def snapshot(
        self, collection: str, where: Optional[DocumentFilter] = None
    ) -> List[Document]:
        """Возвращает копии текущих документов коллекции."""
        with self._changed:
            return self._select(collection, where)

    def subscribe(
        self, collection: str, where: Optional[DocumentFilter] = None
    ) -> Iterator[List[Document]]:
        """
        Живая подписка на коллекцию.

        Бесконечный ленивый генератор: первый снимок выдается сразу,
        каждый следующий - после очередной фиксации, затронувшей коллекцию.
        Повторный вызов начинает подписку заново.
        """
        seen = -1
        while True:
            with self._changed:
                self._changed.wait_for(
                    lambda: self._collection_revisions[collection] != seen
                )
                seen = self._collection_revisions[collection]
                documents = self._select(collection, where)
            yield documents

    def _select(
        self, collection: str, where: Optional[DocumentFilter]
    ) -> List[Document]:
        return [
            copy.deepcopy(document)
            for _, document in self._collections[collection].values()
            if where is None or where(document)
        ]

    def _read(self, collection: str, doc_id: str) -> Tuple[int, Optional[Document]]:
        with self._changed:
            entry = self._collections[collection].get(doc_id)
            if entry is None:
                return ABSENT, None
            return entry[0], copy.deepcopy(entry[1])

    def _query(
        self, collection: str, where: Optional[DocumentFilter]
    ) -> Tuple[int, List[Document]]:
        with self._changed:
            return self._collection_revisions[collection], self._select(
                collection, where
            )

    def _commit(self, tx: "Transaction") -> int:
        with self._changed:
            # Транзакция только для чтения ничего не меняет и не конфликтует
            if not tx.writes:
                return self._revision

            for (collection, doc_id), revision in tx.read_revisions.items():
                entry = self._collections[collection].get(doc_id)
                current = entry[0] if entry is not None else ABSENT
                if current != revision:
                    raise ConcurrencyException(
                        f"Документ {collection}/{doc_id} изменен параллельной "
                        f"транзакцией (ревизия {revision} -> {current})"
                    )
            for collection, revision in tx.query_revisions.items():
                if self._collection_revisions[collection] != revision:
                    raise ConcurrencyException(
                        f"Коллекция {collection} изменена параллельной транзакцией"
                    )

            self._revision += 1
            touched: Set[str] = set()
            for (collection, doc_id), document in tx.writes.items():
                if document is _DELETED:
                    self._collections[collection].pop(doc_id, None)
                else:
                    self._collections[collection][doc_id] = (
                        self._revision,
                        copy.deepcopy(document),
                    )
                touched.add(collection)
            for collection in touched:
                self._collection_revisions[collection] = self._revision
            self._changed.notify_all()
            return self._revision


class Transaction:
    """Одна оптимистичная транзакция. Используется однократно."""

    def __init__(self, store: InMemoryDocumentStore):
        self._store = store
        self.read_revisions: Dict[Tuple[str, str], int] = {}
        self.query_revisions: Dict[str, int] = {}
        self.writes: Dict[Tuple[str, str], Any] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Читает документ, учитывая собственные незафиксированные записи."""
        self._ensure_open()
        key = (collection, doc_id)
        if key in self.writes:
            pending = self.writes[key]
            return None if pending is _DELETED else copy.deepcopy(pending)
        revision, document = self._store._read(collection, doc_id)
        self.read_revisions.setdefault(key, revision)
        return document

    def query(
        self, collection: str, where: Optional[DocumentFilter] = None
    ) -> List[Document]:
        """Выбирает документы коллекции; любая запись в нее вызовет конфликт."""
        self._ensure_open()
        revision, documents = self._store._query(collection, None)
        self.query_revisions.setdefault(collection, revision)

        merged = {document["id"]: document for document in documents}
        for (written_collection, doc_id), pending in self.writes.items():
            if written_collection != collection:
                continue
            if pending is _DELETED:
                merged.pop(doc_id, None)
            else:
                merged[doc_id] = copy.deepcopy(pending)
        return [
            document
            for document in merged.values()
            if where is None or where(document)
        ]

    def set(self, collection: str, doc_id: str, document: Document) -> None:
        self._ensure_open()
        self.writes[(collection, doc_id)] = copy.deepcopy(document)

    def delete(self, collection: str, doc_id: str) -> None:
        self._ensure_open()
        self.writes[(collection, doc_id)] = _DELETED

    def commit(self) -> int:
        """Фиксирует транзакцию атомарно и возвращает новую ревизию."""
        self._ensure_open()
        try:
            return self._store._commit(self)
        finally:
            self._closed = True

    def rollback(self) -> None:
        """Отбрасывает буферизованные записи."""
        self.writes.clear()
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise DomainException("Транзакция уже завершена")
