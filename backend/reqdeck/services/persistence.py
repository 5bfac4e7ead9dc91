"""
Persistence port: JSON documents addressed by (namespace, key).

Entities are stored one document per id under ``{id}.json``; history is a
single JSON array under a fixed key. Stores raise ``PersistenceError`` on
I/O failure; ``Repository`` turns those into "not found" plus a warning.
"""
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from reqdeck.errors import PersistenceError
from reqdeck.models.document import Document

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class DocumentStore(ABC):
    @abstractmethod
    def read(self, namespace: str, key: str) -> str | None:
        ...

    @abstractmethod
    def write(self, namespace: str, key: str, text: str) -> None:
        ...

    @abstractmethod
    def remove(self, namespace: str, key: str) -> bool:
        ...

    @abstractmethod
    def keys(self, namespace: str) -> list[str]:
        ...


class MemoryDocumentStore(DocumentStore):
    def __init__(self) -> None:
        self._data: dict[str, dict[str, str]] = {}

    def read(self, namespace: str, key: str) -> str | None:
        return self._data.get(namespace, {}).get(key)

    def write(self, namespace: str, key: str, text: str) -> None:
        self._data.setdefault(namespace, {})[key] = text

    def remove(self, namespace: str, key: str) -> bool:
        return self._data.get(namespace, {}).pop(key, None) is not None

    def keys(self, namespace: str) -> list[str]:
        return sorted(self._data.get(namespace, {}))


class FileDocumentStore(DocumentStore):
    """``<root>/<namespace>/<key>`` files, UTF-8 JSON."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser().resolve()

    def _path(self, namespace: str, key: str) -> Path:
        path = (self._root / namespace / key).resolve()
        if path.parent != self._root / namespace:
            raise PersistenceError(f"Refusing key outside the data root: {namespace}/{key}")
        return path

    def read(self, namespace: str, key: str) -> str | None:
        path = self._path(namespace, key)
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Could not read {path}: {exc}") from exc

    def write(self, namespace: str, key: str, text: str) -> None:
        path = self._path(namespace, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(path.suffix + ".tmp")
            tmp_path.write_text(text, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            raise PersistenceError(f"Could not write {path}: {exc}") from exc

    def remove(self, namespace: str, key: str) -> bool:
        path = self._path(namespace, key)
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as exc:
            raise PersistenceError(f"Could not delete {path}: {exc}") from exc
        return True

    def keys(self, namespace: str) -> list[str]:
        folder = self._root / namespace
        if not folder.is_dir():
            return []
        return sorted(p.name for p in folder.iterdir() if p.is_file() and p.suffix == ".json")


class SqlDocumentStore(DocumentStore):
    """Documents table, one short-lived session per operation."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def read(self, namespace: str, key: str) -> str | None:
        try:
            with self._session_factory() as db:
                doc = db.query(Document).filter(
                    Document.namespace == namespace,
                    Document.key == key,
                ).first()
                return doc.body if doc else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read {namespace}/{key}: {exc}") from exc

    def write(self, namespace: str, key: str, text: str) -> None:
        try:
            with self._session_factory() as db:
                doc = db.query(Document).filter(
                    Document.namespace == namespace,
                    Document.key == key,
                ).first()
                if doc:
                    doc.body = text
                else:
                    db.add(Document(namespace=namespace, key=key, body=text))
                db.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not write {namespace}/{key}: {exc}") from exc

    def remove(self, namespace: str, key: str) -> bool:
        try:
            with self._session_factory() as db:
                deleted = db.query(Document).filter(
                    Document.namespace == namespace,
                    Document.key == key,
                ).delete()
                db.commit()
                return deleted > 0
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not delete {namespace}/{key}: {exc}") from exc

    def keys(self, namespace: str) -> list[str]:
        try:
            with self._session_factory() as db:
                rows = (
                    db.query(Document.key)
                    .filter(Document.namespace == namespace)
                    .order_by(Document.key)
                    .all()
                )
                return [row.key for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not list {namespace}: {exc}") from exc


class Repository(Generic[T]):
    """Typed entity access over a namespace: load / load_all / save / delete."""

    def __init__(self, store: DocumentStore, namespace: str, model: type[T]) -> None:
        self._store = store
        self._namespace = namespace
        self._model = model

    @staticmethod
    def key_for(entity_id: str) -> str:
        return f"{entity_id}.json"

    def _parse(self, key: str, text: str) -> T | None:
        try:
            return self._model.model_validate_json(text)
        except ValidationError as exc:
            logger.warning("Skipping unreadable document %s/%s: %s", self._namespace, key, exc)
            return None

    def load(self, entity_id: str) -> T | None:
        key = self.key_for(entity_id)
        try:
            text = self._store.read(self._namespace, key)
        except PersistenceError as exc:
            logger.warning("%s", exc)
            return None
        if text is None:
            return None
        return self._parse(key, text)

    def load_all(self) -> list[T]:
        try:
            keys = self._store.keys(self._namespace)
        except PersistenceError as exc:
            logger.warning("%s", exc)
            return []
        result: list[T] = []
        for key in keys:
            try:
                text = self._store.read(self._namespace, key)
            except PersistenceError as exc:
                logger.warning("%s", exc)
                continue
            if text is None:
                continue
            entity = self._parse(key, text)
            if entity is not None:
                result.append(entity)
        return result

    def exists(self, entity_id: str) -> bool:
        return self.load(entity_id) is not None

    def save(self, entity: T) -> bool:
        key = self.key_for(entity.id)  # type: ignore[attr-defined]
        try:
            self._store.write(self._namespace, key, entity.model_dump_json(by_alias=True, indent=2))
        except PersistenceError as exc:
            logger.warning("%s", exc)
            return False
        return True

    def delete(self, entity_id: str) -> bool:
        try:
            return self._store.remove(self._namespace, self.key_for(entity_id))
        except PersistenceError as exc:
            logger.warning("%s", exc)
            return False
