from fastapi import APIRouter

from reqdeck.api.v1 import collections, environments, history, import_export, requests

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(collections.router, prefix="/collections", tags=["Collections"])
api_router.include_router(environments.router, prefix="/environments", tags=["Environments"])
api_router.include_router(history.router, prefix="/history", tags=["History"])
api_router.include_router(requests.router, prefix="/requests", tags=["Requests"])
api_router.include_router(import_export.router, prefix="/import-export", tags=["Import/Export"])
