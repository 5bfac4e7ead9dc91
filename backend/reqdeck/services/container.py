import logging
from dataclasses import dataclass

from reqdeck.config import Settings
from reqdeck.database import build_engine, build_session_factory, create_tables
from reqdeck.services.collection_store import CollectionStore
from reqdeck.services.environment_store import EnvironmentStore
from reqdeck.services.executor import ClientFactory, RequestExecutor
from reqdeck.services.history_store import HistoryStore
from reqdeck.services.persistence import (
    DocumentStore,
    FileDocumentStore,
    MemoryDocumentStore,
    SqlDocumentStore,
)

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every core component, wired once per application."""

    collections: CollectionStore
    environments: EnvironmentStore
    history: HistoryStore
    executor: RequestExecutor


def build_document_store(settings: Settings) -> DocumentStore:
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "memory":
        logger.info("Using in-memory storage")
        return MemoryDocumentStore()
    if backend == "file":
        logger.info("Using file storage at %s", settings.DATA_DIR)
        return FileDocumentStore(settings.DATA_DIR)
    if backend != "sql":
        raise ValueError(f"Unknown STORAGE_BACKEND {settings.STORAGE_BACKEND!r}")

    engine = build_engine(settings.DATABASE_URL)
    create_tables(engine)
    logger.info("Using SQL storage at %s", engine.url)
    return SqlDocumentStore(build_session_factory(engine))


def build_services(
    settings: Settings,
    document_store: DocumentStore | None = None,
    client_factory: ClientFactory | None = None,
) -> Services:
    store = document_store if document_store is not None else build_document_store(settings)
    collections = CollectionStore(store)
    environments = EnvironmentStore(store)
    history = HistoryStore(store, collections, limit=settings.HISTORY_LIMIT)
    executor = RequestExecutor(
        environments,
        history,
        client_factory=client_factory,
        max_redirects=settings.MAX_REDIRECTS,
    )
    return Services(
        collections=collections,
        environments=environments,
        history=history,
        executor=executor,
    )
