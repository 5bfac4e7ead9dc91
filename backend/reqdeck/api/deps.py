from fastapi import Depends, Request

from reqdeck.services.collection_store import CollectionStore
from reqdeck.services.container import Services
from reqdeck.services.environment_store import EnvironmentStore
from reqdeck.services.executor import RequestExecutor
from reqdeck.services.history_store import HistoryStore


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_collection_store(services: Services = Depends(get_services)) -> CollectionStore:
    return services.collections


def get_environment_store(services: Services = Depends(get_services)) -> EnvironmentStore:
    return services.environments


def get_history_store(services: Services = Depends(get_services)) -> HistoryStore:
    return services.history


def get_executor(services: Services = Depends(get_services)) -> RequestExecutor:
    return services.executor
