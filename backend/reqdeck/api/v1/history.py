from fastapi import APIRouter, Depends, HTTPException, Query, status

from reqdeck.api.deps import get_history_store
from reqdeck.schemas.common import CamelModel
from reqdeck.schemas.history import HistoryItem, HistoryOut
from reqdeck.services.history_store import HistoryStore

router = APIRouter()


class SaveToCollectionPayload(CamelModel):
    collection_id: str


@router.get("/", response_model=list[HistoryOut])
def list_history(store: HistoryStore = Depends(get_history_store)):
    return [HistoryOut.from_item(item) for item in store.list()]


@router.get("/recent", response_model=list[HistoryItem])
def recent_history(
    limit: int = Query(20, ge=0, le=100),
    store: HistoryStore = Depends(get_history_store),
):
    return store.recent(limit)


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
def clear_history(store: HistoryStore = Depends(get_history_store)):
    store.clear()


@router.get("/{history_id}", response_model=HistoryItem)
def get_history(
    history_id: str,
    store: HistoryStore = Depends(get_history_store),
):
    item = store.get_by_id(history_id)
    if not item:
        raise HTTPException(status_code=404, detail="History entry not found")
    return item


@router.delete("/{history_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_history(
    history_id: str,
    store: HistoryStore = Depends(get_history_store),
):
    if not store.remove_by_id(history_id):
        raise HTTPException(status_code=404, detail="History entry not found")


@router.post("/{history_id}/save", status_code=status.HTTP_204_NO_CONTENT)
def save_to_collection(
    history_id: str,
    payload: SaveToCollectionPayload,
    store: HistoryStore = Depends(get_history_store),
):
    item = store.get_by_id(history_id)
    if not item:
        raise HTTPException(status_code=404, detail="History entry not found")
    if not store.save_to_collection(item.request, payload.collection_id):
        raise HTTPException(status_code=404, detail="Collection not found")
