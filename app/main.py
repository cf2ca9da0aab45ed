import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes.categories import router as categories_router
from app.api.routes.documents import router as documents_router
from app.api.routes.view import router as view_router
from app.core.config import Settings, settings as default_settings
from app.core.errors import LibraryError
from app.core.logging_config import configure_logging
from app.services.files import BlobStore
from app.services.library import LibraryService
from app.storage.base import LibraryStorage
from app.storage.factory import build_storage

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, storage: Optional[LibraryStorage] = None) -> FastAPI:
    """
    Build the application. The store is created (or taken from `storage`)
    when the app starts and closed when it stops; handlers reach it through
    app.state, never through a module global.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.LOG_LEVEL)
        store = storage or build_storage(settings)
        blobs = BlobStore(settings.UPLOAD_DIR)
        blobs.ensure_root()

        app.state.settings = settings
        app.state.storage = store
        app.state.library = LibraryService(store, blobs, settings.max_upload_bytes)
        app.state.library.seed_default_categories(settings.DEFAULT_CATEGORIES)
        logger.info(
            "PDF library ready (env=%s, storage=%s, uploads=%s)",
            settings.ENV,
            store.name,
            blobs.root,
        )
        try:
            yield
        finally:
            store.close()
            logger.info("PDF library stopped")

    # 1) Create the app FIRST
    app = FastAPI(title="PDF Library", lifespan=lifespan)

    # 2) Add CORS Middleware BEFORE routes
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 3) Map library errors and bad payloads to JSON responses
    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        content = {"detail": exc.message}
        if exc.details:
            content["details"] = jsonable_encoder(exc.details)
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    # 4) Include routers AFTER app is created
    app.include_router(categories_router)
    app.include_router(documents_router)
    app.include_router(view_router)

    # 5) Health check
    @app.get("/health")
    def health(request: Request):
        return {"ok": True, "service": "pdf-library", "storage": request.app.state.storage.name}

    return app


app = create_app()
