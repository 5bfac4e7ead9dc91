import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from reqdeck.api.deps import get_environment_store
from reqdeck.schemas.environment import Environment
from reqdeck.services.environment_store import EnvironmentStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=Environment, status_code=status.HTTP_201_CREATED)
def create_environment(
    payload: Environment,
    store: EnvironmentStore = Depends(get_environment_store),
):
    environment = store.create(payload)
    if environment is None:
        raise HTTPException(status_code=500, detail="Environment could not be saved")
    return environment


@router.get("/", response_model=list[Environment])
def list_environments(store: EnvironmentStore = Depends(get_environment_store)):
    return store.get_all()


@router.get("/active", response_model=Environment | None)
def get_active_environment(store: EnvironmentStore = Depends(get_environment_store)):
    return store.get_active()


@router.delete("/active", status_code=status.HTTP_204_NO_CONTENT)
def clear_active_environment(store: EnvironmentStore = Depends(get_environment_store)):
    store.clear_active()


@router.post("/import", response_model=Environment, status_code=status.HTTP_201_CREATED)
async def import_environment(
    file: UploadFile = File(...),
    store: EnvironmentStore = Depends(get_environment_store),
):
    """Import a Postman environment JSON file."""
    content = await file.read()
    try:
        environment = store.import_from_postman(content.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Failed to parse Postman environment: {e}")
    if environment is None:
        raise HTTPException(status_code=500, detail="Environment could not be saved")
    logger.info("Imported environment %s with %d variables", environment.name, len(environment.variables))
    return environment


@router.get("/{environment_id}", response_model=Environment)
def get_environment(
    environment_id: str,
    store: EnvironmentStore = Depends(get_environment_store),
):
    environment = store.get(environment_id)
    if not environment:
        raise HTTPException(status_code=404, detail="Environment not found")
    return environment


@router.put("/{environment_id}", response_model=Environment)
def update_environment(
    environment_id: str,
    payload: Environment,
    store: EnvironmentStore = Depends(get_environment_store),
):
    payload.id = environment_id
    if not store.update(payload):
        raise HTTPException(status_code=404, detail="Environment not found")
    return payload


@router.delete("/{environment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_environment(
    environment_id: str,
    store: EnvironmentStore = Depends(get_environment_store),
):
    if not store.delete(environment_id):
        raise HTTPException(status_code=404, detail="Environment not found")


@router.post("/{environment_id}/activate", response_model=Environment)
def activate_environment(
    environment_id: str,
    store: EnvironmentStore = Depends(get_environment_store),
):
    # unknown ids raise NotFoundError, mapped to 404 by the app
    return store.set_active(environment_id)


@router.get("/{environment_id}/export")
def export_environment(
    environment_id: str,
    store: EnvironmentStore = Depends(get_environment_store),
):
    """Export as a Postman environment."""
    exported = store.export_to_postman(environment_id)
    if exported is None:
        raise HTTPException(status_code=404, detail="Environment not found")
    return exported
