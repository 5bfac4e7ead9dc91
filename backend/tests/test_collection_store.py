import json

import pytest

from reqdeck.schemas.collection import Collection, CollectionNode
from reqdeck.schemas.request import ApiRequest, HttpMethod
from reqdeck.services.collection_store import CollectionStore, find_folder, find_request
from reqdeck.services.persistence import MemoryDocumentStore


@pytest.fixture
def documents():
    return MemoryDocumentStore()


@pytest.fixture
def store(documents):
    return CollectionStore(documents)


def _tree(store: CollectionStore) -> tuple[Collection, CollectionNode, CollectionNode]:
    """Demo -> Auth -> Nested"""
    collection = store.create(Collection(name="Demo"))
    auth = store.add_folder(collection.id, CollectionNode(name="Auth"))
    nested = store.add_folder(auth.id, CollectionNode(name="Nested"))
    return collection, auth, nested


def test_create_assigns_id_and_timestamps(store):
    created = store.create(Collection(id="", name="Demo"))
    assert created.id
    assert created.created_at == created.updated_at
    assert store.get(created.id).name == "Demo"


def test_get_all_skips_corrupt_documents(store, documents):
    store.create(Collection(name="Good"))
    documents.write(CollectionStore.NAMESPACE, "broken.json", "{not json")
    assert [c.name for c in store.get_all()] == ["Good"]


def test_update_requires_existing_collection(store):
    assert store.update(Collection(name="ghost")) is False


def test_update_stamps_updated_at(store):
    collection = store.create(Collection(name="Demo"))
    before = collection.updated_at
    collection.name = "Renamed"
    assert store.update(collection) is True
    saved = store.get(collection.id)
    assert saved.name == "Renamed"
    assert saved.updated_at >= before


def test_delete(store):
    collection = store.create(Collection(name="Demo"))
    assert store.delete(collection.id) is True
    assert store.delete(collection.id) is False
    assert store.get(collection.id) is None


def test_demo_auth_login_scenario(store):
    collection = store.create(Collection(name="Demo"))
    auth = store.add_folder(collection.id, CollectionNode(name="Auth"))
    login = ApiRequest(name="Login", method=HttpMethod.POST, url="https://api.test/login")

    assert store.save_request_to_folder(collection.id, auth.id, login) is True

    collections = store.get_all()
    assert len(collections) == 1
    assert collections[0].folders[0].requests[0].name == "Login"
    assert collections[0].folders[0].parent_id == collection.id


def test_folder_id_passed_as_owner_resolves_root_collection(store, documents):
    collection, _, nested = _tree(store)
    other = store.create(Collection(name="Other"))

    assert store.save_request_to_folder(nested.id, None, ApiRequest(name="Deep")) is True

    saved = json.loads(documents.read(CollectionStore.NAMESPACE, f"{collection.id}.json"))
    assert saved["folders"][0]["folders"][0]["requests"][0]["name"] == "Deep"
    assert store.get(other.id).requests == []


def test_unknown_folder_falls_back_to_root(store):
    collection = store.create(Collection(name="Demo"))
    assert store.save_request_to_folder(collection.id, "no-such-folder", ApiRequest(name="R")) is True
    assert [r.name for r in store.get(collection.id).requests] == ["R"]


def test_unresolvable_owner_fails(store):
    store.create(Collection(name="Demo"))
    assert store.save_request_to_folder("nowhere", None, ApiRequest()) is False


def test_save_overwrites_in_place(store):
    collection = store.create(Collection(name="Demo"))
    first = ApiRequest(name="first")
    second = ApiRequest(name="second")
    store.save_request_to_folder(collection.id, None, first)
    store.save_request_to_folder(collection.id, None, second)

    edited = first.clone()
    edited.name = "first, edited"
    store.save_request_to_folder(collection.id, None, edited)

    assert [r.name for r in store.get(collection.id).requests] == ["first, edited", "second"]


def test_find_folder_searches_nested_folders_only(store):
    collection, auth, nested = _tree(store)
    collection = store.get(collection.id)
    assert find_folder(collection, nested.id).name == "Nested"
    assert find_folder(collection, auth.id).name == "Auth"
    assert find_folder(collection, collection.id) is None


def test_find_request_checks_direct_requests_first():
    shared = ApiRequest(name="root copy")
    deeper = shared.clone()
    deeper.name = "folder copy"
    node = CollectionNode(requests=[shared], folders=[CollectionNode(requests=[deeper])])
    assert find_request(node, shared.id).name == "root copy"


def test_find_request_anywhere(store):
    collection, _, nested = _tree(store)
    request = ApiRequest(name="Deep")
    store.save_request_to_folder(collection.id, nested.id, request)

    owner_id, found = store.find_request_anywhere(request.id)
    assert owner_id == collection.id
    assert found.name == "Deep"
    assert store.find_request_anywhere("missing") is None


def test_delete_request_at_root(store):
    collection = store.create(Collection(name="Demo"))
    request = ApiRequest(name="Root")
    store.save_request_to_folder(collection.id, None, request)

    assert store.delete_request_from_folder(collection.id, request.id) is True
    assert store.get(collection.id).requests == []


def test_delete_request_in_nested_folder(store):
    collection, auth, nested = _tree(store)
    request = ApiRequest(name="Deep")
    store.save_request_to_folder(collection.id, nested.id, request)

    # a folder id works as the owner too
    assert store.delete_request_from_folder(auth.id, request.id) is True
    saved = store.get(collection.id)
    assert saved.folders[0].folders[0].requests == []


def test_delete_missing_request(store):
    collection = store.create(Collection(name="Demo"))
    assert store.delete_request_from_folder(collection.id, "missing") is False
    assert store.delete_request_from_folder("missing", "missing") is False


def test_add_and_update_request(store):
    collection, _, nested = _tree(store)
    request = ApiRequest(name="Deep", url="http://x")
    store.save_request_to_folder(collection.id, nested.id, request)

    edited = request.clone()
    edited.url = "http://y"
    assert store.update_request(collection.id, edited) is True
    assert store.find_request_anywhere(request.id)[1].url == "http://y"
    assert store.update_request(collection.id, ApiRequest()) is False

    assert store.add_request(collection.id, ApiRequest(name="Top")) is True
    assert [r.name for r in store.get(collection.id).requests] == ["Top"]
    assert store.add_request("missing", ApiRequest()) is False


def test_delete_folder(store):
    collection, auth, nested = _tree(store)
    assert store.delete_folder(collection.id, nested.id) is True
    assert store.get(collection.id).folders[0].folders == []
    assert store.delete_folder(collection.id, nested.id) is False


def test_move_request_between_collections(store):
    source, _, nested = _tree(store)
    target = store.create(Collection(name="Target"))
    request = ApiRequest(name="Mover")
    store.save_request_to_folder(source.id, nested.id, request)

    assert store.move_request(request.id, target.id) is True
    assert store.get(source.id).folders[0].folders[0].requests == []
    assert [r.id for r in store.get(target.id).requests] == [request.id]


def test_move_request_to_unknown_target_keeps_request(store):
    collection = store.create(Collection(name="Demo"))
    request = ApiRequest(name="Stay")
    store.save_request_to_folder(collection.id, None, request)

    assert store.move_request(request.id, "nowhere") is False
    assert store.find_request_anywhere(request.id) is not None


def test_export_and_import_collections(store):
    collection, _, nested = _tree(store)
    store.save_request_to_folder(collection.id, nested.id, ApiRequest(name="Deep"))

    exported = store.export_collections([collection.id, "missing"])
    imported = store.import_collections(exported)

    assert len(imported) == 1
    assert imported[0].id != collection.id
    assert imported[0].folders[0].folders[0].requests[0].name == "Deep"
    assert len(store.get_all()) == 2


def test_import_collections_rejects_garbage(store):
    assert store.import_collections("not json") == []


def test_import_postman(store):
    data = {
        "info": {"name": "From Postman"},
        "item": [{"name": "Ping", "request": {"method": "GET", "url": "http://x/ping"}}],
    }
    collection = store.import_postman(json.dumps(data))
    assert store.get(collection.id).requests[0].name == "Ping"
    assert store.import_postman("{broken") is None
    assert store.import_postman(json.dumps({"no": "info"})) is None
