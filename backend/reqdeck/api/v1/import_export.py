"""
API endpoints for Postman collection import/export.
"""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from reqdeck.api.deps import get_collection_store
from reqdeck.schemas.collection import Collection, CollectionNode
from reqdeck.services import postman
from reqdeck.services.collection_store import CollectionStore, iter_folders

logger = logging.getLogger(__name__)

router = APIRouter()


def _count_requests(node: CollectionNode) -> int:
    return len(node.requests) + sum(len(folder.requests) for folder in iter_folders(node))


@router.post("/import/postman", status_code=status.HTTP_201_CREATED)
async def import_postman(
    file: UploadFile = File(...),
    store: CollectionStore = Depends(get_collection_store),
):
    """Import a Postman Collection v2.1 JSON file."""
    content = await file.read()
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File is not UTF-8 text")

    collection = store.import_postman(text)
    if collection is None:
        raise HTTPException(status_code=400, detail="Failed to parse Postman collection")

    total = _count_requests(collection)
    logger.info("Imported Postman collection %s with %d requests", collection.name, total)
    return {
        "collection_id": collection.id,
        "collection_name": collection.name,
        "total_requests": total,
    }


@router.get("/export/postman/{collection_id}")
def export_postman(
    collection_id: str,
    store: CollectionStore = Depends(get_collection_store),
):
    """Export a collection as Postman Collection v2.1 JSON."""
    collection: Collection | None = store.get(collection_id)
    if not collection:
        raise HTTPException(status_code=404, detail="Collection not found")
    return postman.collection_to_postman(collection)
