import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response

from reqdeck.api.deps import get_collection_store
from reqdeck.schemas.collection import Collection, CollectionNode
from reqdeck.schemas.common import CamelModel
from reqdeck.schemas.request import ApiRequest
from reqdeck.services.collection_store import CollectionStore

logger = logging.getLogger(__name__)

router = APIRouter()


class SaveRequestPayload(CamelModel):
    folder_id: str | None = None
    request: ApiRequest


class FolderCreate(CamelModel):
    name: str
    description: str = ""


class MoveRequestPayload(CamelModel):
    target_id: str


class ExportPayload(CamelModel):
    collection_ids: list[str]


class LocatedRequest(CamelModel):
    collection_id: str
    request: ApiRequest


@router.post("/", response_model=Collection, status_code=status.HTTP_201_CREATED)
def create_collection(
    payload: Collection,
    store: CollectionStore = Depends(get_collection_store),
):
    collection = store.create(payload)
    if collection is None:
        raise HTTPException(status_code=500, detail="Collection could not be saved")
    return collection


@router.get("/", response_model=list[Collection])
def list_collections(store: CollectionStore = Depends(get_collection_store)):
    return store.get_all()


# ── Cross-collection lookups (declared before /{collection_id}) ──

@router.get("/requests/{request_id}", response_model=LocatedRequest)
def find_request(
    request_id: str,
    store: CollectionStore = Depends(get_collection_store),
):
    located = store.find_request_anywhere(request_id)
    if located is None:
        raise HTTPException(status_code=404, detail="Request not found")
    collection_id, request = located
    return LocatedRequest(collection_id=collection_id, request=request)


@router.post("/requests/{request_id}/move", status_code=status.HTTP_204_NO_CONTENT)
def move_request(
    request_id: str,
    payload: MoveRequestPayload,
    store: CollectionStore = Depends(get_collection_store),
):
    if not store.move_request(request_id, payload.target_id):
        raise HTTPException(status_code=404, detail="Request or target not found")


@router.post("/export")
def export_collections(
    payload: ExportPayload,
    store: CollectionStore = Depends(get_collection_store),
):
    return Response(content=store.export_collections(payload.collection_ids), media_type="application/json")


@router.post("/import", response_model=list[Collection], status_code=status.HTTP_201_CREATED)
async def import_collections(
    request: Request,
    store: CollectionStore = Depends(get_collection_store),
):
    """Import collections previously produced by ``/export``."""
    text = (await request.body()).decode("utf-8")
    imported = store.import_collections(text)
    if not imported:
        raise HTTPException(status_code=400, detail="No collections could be imported")
    logger.info("Imported %d collections", len(imported))
    return imported


# ── Single collection ──

@router.get("/{collection_id}", response_model=Collection)
def get_collection(
    collection_id: str,
    store: CollectionStore = Depends(get_collection_store),
):
    collection = store.get(collection_id)
    if not collection:
        raise HTTPException(status_code=404, detail="Collection not found")
    return collection


@router.put("/{collection_id}", response_model=Collection)
def update_collection(
    collection_id: str,
    payload: Collection,
    store: CollectionStore = Depends(get_collection_store),
):
    payload.id = collection_id
    if not store.update(payload):
        raise HTTPException(status_code=404, detail="Collection not found")
    return payload


@router.delete("/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_collection(
    collection_id: str,
    store: CollectionStore = Depends(get_collection_store),
):
    if not store.delete(collection_id):
        raise HTTPException(status_code=404, detail="Collection not found")


# ── Requests inside a collection or folder ──

@router.post("/{collection_id}/requests", response_model=ApiRequest, status_code=status.HTTP_201_CREATED)
def save_request(
    collection_id: str,
    payload: SaveRequestPayload,
    store: CollectionStore = Depends(get_collection_store),
):
    """``collection_id`` may also be the id of a folder nested in any collection."""
    if not store.save_request_to_folder(collection_id, payload.folder_id, payload.request):
        raise HTTPException(status_code=404, detail="Collection or folder not found")
    return payload.request


@router.put("/{collection_id}/requests/{request_id}", response_model=ApiRequest)
def update_request(
    collection_id: str,
    request_id: str,
    payload: ApiRequest,
    store: CollectionStore = Depends(get_collection_store),
):
    request = payload.with_id(request_id)
    if not store.update_request(collection_id, request):
        raise HTTPException(status_code=404, detail="Request not found")
    return request


@router.delete("/{collection_id}/requests/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_request(
    collection_id: str,
    request_id: str,
    store: CollectionStore = Depends(get_collection_store),
):
    if not store.delete_request_from_folder(collection_id, request_id):
        raise HTTPException(status_code=404, detail="Request not found")


# ── Folders ──

@router.post("/{collection_id}/folders", response_model=CollectionNode, status_code=status.HTTP_201_CREATED)
def create_folder(
    collection_id: str,
    payload: FolderCreate,
    store: CollectionStore = Depends(get_collection_store),
):
    folder = store.add_folder(collection_id, CollectionNode(name=payload.name, description=payload.description))
    if folder is None:
        raise HTTPException(status_code=404, detail="Collection or folder not found")
    return folder


@router.delete("/{collection_id}/folders/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_folder(
    collection_id: str,
    folder_id: str,
    store: CollectionStore = Depends(get_collection_store),
):
    if not store.delete_folder(collection_id, folder_id):
        raise HTTPException(status_code=404, detail="Folder not found")
