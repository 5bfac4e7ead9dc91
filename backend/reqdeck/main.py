import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reqdeck.api.v1.router import api_router
from reqdeck.config import Settings, load_settings
from reqdeck.errors import InvalidRequestError, NotFoundError
from reqdeck.services.container import build_services
from reqdeck.services.executor import ClientFactory
from reqdeck.services.persistence import DocumentStore

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(log_file: str | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    if not log_file:
        return
    try:
        log_path = Path(log_file).expanduser().resolve()
        root = logging.getLogger()
        for existing in root.handlers:
            if isinstance(existing, logging.FileHandler) and Path(existing.baseFilename) == log_path:
                return
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        logger.info("Logging to %s", log_path)
    except OSError as e:
        logger.warning("Failed to init file logging: %s", e)


def create_app(
    settings: Settings | None = None,
    document_store: DocumentStore | None = None,
    client_factory: ClientFactory | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.LOG_FILE)
    services = build_services(settings, document_store=document_store, client_factory=client_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s v%s [%s]", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)
        await services.executor.initialize()
        yield
        logger.info("Shutting down %s", settings.APP_NAME)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(request: Request, exc: InvalidRequestError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    app.include_router(api_router)

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "version": settings.APP_VERSION}

    return app
