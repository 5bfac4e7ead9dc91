"""
Collections: persisted request trees.

Every tree walk is depth-first, pre-order, children in stored order, first
match wins. Ids are unique within one collection's subtree only.
"""
import json
import logging
from collections.abc import Iterator

from pydantic import TypeAdapter, ValidationError

from reqdeck.schemas.collection import Collection, CollectionNode
from reqdeck.schemas.common import new_id, utcnow
from reqdeck.schemas.request import ApiRequest
from reqdeck.services import postman
from reqdeck.services.persistence import DocumentStore, Repository

logger = logging.getLogger(__name__)

_collection_list = TypeAdapter(list[Collection])


# ── Tree helpers ──

def iter_folders(node: CollectionNode) -> Iterator[CollectionNode]:
    """Every folder below ``node`` (not ``node`` itself), pre-order."""
    for folder in node.folders:
        yield folder
        yield from iter_folders(folder)


def find_folder(root: CollectionNode, folder_id: str) -> CollectionNode | None:
    for folder in iter_folders(root):
        if folder.id == folder_id:
            return folder
    return None


def find_request(node: CollectionNode, request_id: str) -> ApiRequest | None:
    """Direct requests of ``node`` first, then each folder subtree in order."""
    for request in node.requests:
        if request.id == request_id:
            return request
    for folder in node.folders:
        found = find_request(folder, request_id)
        if found is not None:
            return found
    return None


def _remove_from_root(collection: Collection, request_id: str) -> bool:
    for index, request in enumerate(collection.requests):
        if request.id == request_id:
            del collection.requests[index]
            return True
    return False


def _remove_from_folders(folders: list[CollectionNode], request_id: str) -> bool:
    for folder in folders:
        for index, request in enumerate(folder.requests):
            if request.id == request_id:
                del folder.requests[index]
                return True
        if _remove_from_folders(folder.folders, request_id):
            return True
    return False


def _remove_folder(node: CollectionNode, folder_id: str) -> bool:
    for index, folder in enumerate(node.folders):
        if folder.id == folder_id:
            del node.folders[index]
            return True
        if _remove_folder(folder, folder_id):
            return True
    return False


def _upsert_request(requests: list[ApiRequest], request: ApiRequest) -> None:
    """Replace in place when the id is already there, otherwise append."""
    for index, existing in enumerate(requests):
        if existing.id == request.id:
            requests[index] = request
            return
    requests.append(request)


def _replace_request(node: CollectionNode, request: ApiRequest) -> bool:
    for index, existing in enumerate(node.requests):
        if existing.id == request.id:
            node.requests[index] = request
            return True
    return any(_replace_request(folder, request) for folder in node.folders)


class CollectionStore:
    NAMESPACE = "collections"

    def __init__(self, document_store: DocumentStore) -> None:
        self._repo = Repository(document_store, self.NAMESPACE, Collection)

    # ── CRUD ──

    def create(self, collection: Collection) -> Collection | None:
        if not collection.id:
            collection.id = new_id()
        collection.created_at = utcnow()
        collection.updated_at = collection.created_at
        if not self._repo.save(collection):
            return None
        logger.info("Created collection %s (%s)", collection.id, collection.name)
        return collection

    def get(self, collection_id: str) -> Collection | None:
        return self._repo.load(collection_id)

    def get_all(self) -> list[Collection]:
        return self._repo.load_all()

    def update(self, collection: Collection) -> bool:
        if not self._repo.exists(collection.id):
            return False
        collection.updated_at = utcnow()
        return self._repo.save(collection)

    def delete(self, collection_id: str) -> bool:
        return self._repo.delete(collection_id)

    # ── Tree lookups ──

    def find_folder(self, root: CollectionNode, folder_id: str) -> CollectionNode | None:
        return find_folder(root, folder_id)

    def find_request_anywhere(self, request_id: str) -> tuple[str, ApiRequest] | None:
        """Locate a request without knowing its collection: ``(collection_id, request)``."""
        for collection in self.get_all():
            request = find_request(collection, request_id)
            if request is not None:
                return collection.id, request
        return None

    def _resolve_owner(self, collection_or_folder_id: str) -> tuple[Collection, str | None] | None:
        """Resolve an id that may name a collection or a folder nested anywhere.

        Returns the owning collection and, when the id turned out to be a
        folder, that folder id.
        """
        collection = self.get(collection_or_folder_id)
        if collection is not None:
            return collection, None
        for candidate in self.get_all():
            if find_folder(candidate, collection_or_folder_id) is not None:
                return candidate, collection_or_folder_id
        return None

    # ── Tree mutations ──

    def save_request_to_folder(
        self,
        collection_or_folder_id: str,
        folder_id: str | None,
        request: ApiRequest,
    ) -> bool:
        resolved = self._resolve_owner(collection_or_folder_id)
        if resolved is None:
            logger.warning("No collection or folder with id %s", collection_or_folder_id)
            return False
        collection, discovered_folder_id = resolved
        target_id = discovered_folder_id if discovered_folder_id is not None else folder_id

        target: CollectionNode = collection
        if target_id and target_id != collection.id:
            folder = find_folder(collection, target_id)
            if folder is None:
                logger.info(
                    "Folder %s not found in collection %s, saving request at the root",
                    target_id, collection.id,
                )
            else:
                target = folder

        if not request.id:
            request = request.with_id(new_id())
        _upsert_request(target.requests, request.clone())
        return self.update(collection)

    def delete_request_from_folder(self, collection_or_folder_id: str, request_id: str) -> bool:
        resolved = self._resolve_owner(collection_or_folder_id)
        if resolved is None:
            return False
        collection, _ = resolved
        removed = _remove_from_root(collection, request_id) or _remove_from_folders(
            collection.folders, request_id
        )
        if not removed:
            return False
        return self.update(collection)

    def add_request(self, collection_id: str, request: ApiRequest) -> bool:
        """Append at the collection root."""
        collection = self.get(collection_id)
        if collection is None:
            return False
        if not request.id:
            request = request.with_id(new_id())
        collection.requests.append(request.clone())
        return self.update(collection)

    def update_request(self, collection_id: str, request: ApiRequest) -> bool:
        collection = self.get(collection_id)
        if collection is None:
            return False
        if not _replace_request(collection, request.clone()):
            return False
        return self.update(collection)

    def add_folder(self, collection_or_folder_id: str, folder: CollectionNode) -> CollectionNode | None:
        resolved = self._resolve_owner(collection_or_folder_id)
        if resolved is None:
            return None
        collection, discovered_folder_id = resolved
        parent: CollectionNode = collection
        if discovered_folder_id is not None:
            parent = find_folder(collection, discovered_folder_id) or collection
        if not folder.id:
            folder.id = new_id()
        folder.parent_id = parent.id
        parent.folders.append(folder)
        if not self.update(collection):
            return None
        return folder

    def delete_folder(self, collection_or_folder_id: str, folder_id: str) -> bool:
        resolved = self._resolve_owner(collection_or_folder_id)
        if resolved is None:
            return False
        collection, _ = resolved
        if not _remove_folder(collection, folder_id):
            return False
        return self.update(collection)

    def move_request(self, request_id: str, target_id: str) -> bool:
        """Move a request to the root of a collection or into a folder."""
        located = self.find_request_anywhere(request_id)
        if located is None:
            return False
        owner_id, request = located
        if not self.delete_request_from_folder(owner_id, request_id):
            return False
        if self.save_request_to_folder(target_id, None, request):
            return True
        logger.warning("Could not move request %s to %s, restoring it", request_id, target_id)
        self.add_request(owner_id, request)
        return False

    # ── Native import / export ──

    def export_collections(self, collection_ids: list[str]) -> str:
        collections = [c for c in (self.get(cid) for cid in collection_ids) if c is not None]
        return _collection_list.dump_json(collections, by_alias=True, indent=2).decode()

    def import_collections(self, text: str) -> list[Collection]:
        try:
            imported = _collection_list.validate_json(text)
        except ValidationError as exc:
            logger.warning("Could not import collections: %s", exc)
            return []
        result = []
        for collection in imported:
            # fresh id so imports never overwrite existing collections
            collection.id = new_id()
            created = self.create(collection)
            if created is not None:
                result.append(created)
        return result

    def import_postman(self, text: str) -> Collection | None:
        try:
            collection = postman.collection_from_postman(json.loads(text))
        except (ValueError, TypeError, AttributeError) as exc:
            logger.warning("Could not import Postman collection: %s", exc)
            return None
        collection.id = new_id()
        return self.create(collection)
