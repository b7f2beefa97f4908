"""HTTP server exposing the four tag operations."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tgcd.api.wire import (
    SERVICE_PATH,
    AddTagsRequest,
    CopyTagsRequest,
    DigestRequest,
    Empty,
    ErrorBody,
    GetMultipleTagsRequest,
    GetMultipleTagsResponse,
    Tags,
)
from tgcd.core.config import ServerSettings
from tgcd.core.database import ConnectionPool, DatabaseManager
from tgcd.core.exceptions import ErrorKind, TgcdError, http_status_for
from tgcd.services.tag_store import TagStore
from tgcd.services.tgcd_service import TgcdService

logger = logging.getLogger(__name__)

router = APIRouter(prefix=SERVICE_PATH)


def get_service(request: Request) -> TgcdService:
    """Get the service facade created at startup."""
    return request.app.state.service


Service = Annotated[TgcdService, Depends(get_service)]


@router.post("/GetTags", response_model=Tags)
async def get_tags(body: DigestRequest, service: Service) -> Tags:
    """Return the tags of one digest."""
    return Tags(tags=await service.get_tags(body.digest))


@router.post("/AddTagsToHash", response_model=Empty)
async def add_tags_to_hash(body: AddTagsRequest, service: Service) -> Empty:
    """Attach tags to a digest."""
    await service.add_tags_to_hash(body.digest, body.tags)
    return Empty()


@router.post("/GetMultipleTags", response_model=GetMultipleTagsResponse)
async def get_multiple_tags(body: GetMultipleTagsRequest, service: Service) -> GetMultipleTagsResponse:
    """Return the tags of several digests, in request order."""
    results = await service.get_multiple_tags(body.digests)
    return GetMultipleTagsResponse(tags=[Tags(tags=tags) for tags in results])


@router.post("/CopyTags", response_model=Empty)
async def copy_tags(body: CopyTagsRequest, service: Service) -> Empty:
    """Add the tags of one digest to another."""
    await service.copy_tags(body.src_digest, body.dest_digest)
    return Empty()


def _error_response(kind: ErrorKind, message: str) -> JSONResponse:
    body = ErrorBody(code=kind.value, message=message)
    return JSONResponse(status_code=http_status_for(kind), content=body.model_dump())


async def handle_tgcd_error(request: Request, exc: TgcdError) -> JSONResponse:
    """Translate domain errors into the outward status vocabulary."""
    if exc.kind is ErrorKind.UNAVAILABLE:
        logger.error("Storage failure while handling %s", request.url.path, exc_info=exc)
        return _error_response(exc.kind, "db error")
    logger.info("Rejected invalid argument on %s: %s", request.url.path, exc)
    return _error_response(exc.kind, str(exc))


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as invalid arguments."""
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', '')}" for error in exc.errors()
    )
    logger.info("Rejected malformed request on %s: %s", request.url.path, message)
    return _error_response(ErrorKind.INVALID_ARGUMENT, message or "Received invalid argument")


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """
    Build the application.

    The database schema is created and the connection pool opened when the
    application starts; both are released when it shuts down.
    """
    settings = settings or ServerSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        db_manager = DatabaseManager(settings.database_url)
        pool = ConnectionPool(db_manager.engine, size=settings.pool_size)
        try:
            await db_manager.create_db_and_tables()
            await pool.open()
            app.state.service = TgcdService(TagStore(pool))
            yield
        finally:
            await pool.close()
            await db_manager.dispose()

    app = FastAPI(title="tgcd", lifespan=lifespan)
    app.include_router(router)
    app.add_exception_handler(TgcdError, handle_tgcd_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    return app
