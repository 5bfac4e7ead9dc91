from __future__ import annotations

import logging

from pydantic import TypeAdapter, ValidationError

from reqdeck.errors import PersistenceError
from reqdeck.schemas.common import new_id, utcnow
from reqdeck.schemas.history import HistoryItem
from reqdeck.schemas.request import ApiRequest
from reqdeck.schemas.response import ApiResponse
from reqdeck.services.collection_store import CollectionStore
from reqdeck.services.persistence import DocumentStore

logger = logging.getLogger(__name__)

_history_list = TypeAdapter(list[HistoryItem])

MAX_HISTORY_ITEMS = 100


class HistoryStore:
    """Recently sent requests, newest first, one entry per (url, method)."""

    NAMESPACE = "history"
    KEY = "history.json"

    def __init__(
        self,
        document_store: DocumentStore,
        collection_store: CollectionStore,
        limit: int = MAX_HISTORY_ITEMS,
    ) -> None:
        self._store = document_store
        self._collections = collection_store
        self._limit = limit

    def _load(self) -> list[HistoryItem]:
        try:
            text = self._store.read(self.NAMESPACE, self.KEY)
        except PersistenceError as exc:
            logger.warning("%s", exc)
            return []
        if not text:
            return []
        try:
            return _history_list.validate_json(text)
        except ValidationError as exc:
            logger.warning("Request history is unreadable, starting empty: %s", exc)
            return []

    def _save(self, items: list[HistoryItem]) -> bool:
        try:
            self._store.write(
                self.NAMESPACE,
                self.KEY,
                _history_list.dump_json(items, by_alias=True, indent=2).decode(),
            )
        except PersistenceError as exc:
            logger.warning("%s", exc)
            return False
        return True

    def record(self, request: ApiRequest, response: ApiResponse | None = None) -> HistoryItem:
        snapshot = request.clone()
        snapshot.last_used = utcnow()
        item = HistoryItem(
            request=snapshot,
            response=response if response is not None else ApiResponse.placeholder(),
            timestamp=snapshot.last_used,
        )

        items = [
            existing for existing in self._load()
            if not (existing.request.url == snapshot.url and existing.request.method == snapshot.method)
        ]
        items.insert(0, item)
        del items[self._limit:]
        self._save(items)
        return item

    def list(self) -> list[HistoryItem]:
        return sorted(self._load(), key=lambda item: item.timestamp, reverse=True)

    def recent(self, limit: int = 20) -> list[HistoryItem]:
        return self.list()[:max(limit, 0)]

    def get_by_id(self, item_id: str) -> HistoryItem | None:
        for item in self._load():
            if item.id == item_id:
                return item
        return None

    def remove_by_id(self, item_id: str) -> bool:
        items = self._load()
        remaining = [item for item in items if item.id != item_id]
        if len(remaining) == len(items):
            return False
        return self._save(remaining)

    def clear(self) -> None:
        self._save([])

    def save_to_collection(self, request: ApiRequest, collection_id: str) -> bool:
        copy = request.with_id(new_id())
        if not copy.name:
            copy.name = f"{copy.method.value} {copy.url}"
        return self._collections.add_request(collection_id, copy)
