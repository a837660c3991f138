"""Entry point for the ingestor service."""

import time
import uuid
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from ingestor import config
from ingestor.database import get_db_connection, init_database
from ingestor.dispatch_loop import DispatchLoop
from ingestor.exceptions import (
    CheckpointStoreError,
    FileRecordBusyError,
    FileRecordNotFoundError,
    IngestError,
    InputStorageError,
    InvalidSettingsError,
    UnsupportedInputError,
)
from ingestor.extractor_client import HttpExtractor
from ingestor.routes.config_routes import router as config_router
from ingestor.routes.file_routes import router as file_router
from ingestor.schemas.common import ErrorResponse
from ingestor.service_locator import (
    get_checkpoint_store,
    get_dispatch_loop,
    get_lifecycle,
    set_dispatch_loop,
    set_settings_store,
    set_source,
)
from ingestor.settings import SettingsStore
from ingestor.sources import DirectorySource

logger = setup_logging('ingestor')

app = FastAPI(
    title="Knowledge Ingestor",
    description="Resumable chunked ingestion of text files into a knowledge extractor",
    version="1.0.0"
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(f"Request started: {request.method} {request.url.path} [request_id={request_id}]")

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Initialize storage and start the dispatch loop on application startup.
    """
    logger.info("Ingestor service starting up...")

    init_database()
    logger.info("Database initialized")

    settings_store = SettingsStore(Path(config.SETTINGS_PATH))
    source = DirectorySource(Path(config.WATCH_DIR))
    source.ensure_directories()

    extractor = HttpExtractor(
        url=config.EXTRACTOR_URL,
        timeout=config.EXTRACTOR_TIMEOUT,
        api_key=config.EXTRACTOR_API_KEY,
    )

    dispatch_loop = DispatchLoop(
        store=get_checkpoint_store(),
        lifecycle=get_lifecycle(),
        source=source,
        extractor=extractor,
        settings_store=settings_store,
        shutdown_grace=config.SHUTDOWN_GRACE,
    )

    set_settings_store(settings_store)
    set_source(source)
    set_dispatch_loop(dispatch_loop)

    await dispatch_loop.start()
    logger.info(f"Watching {config.WATCH_DIR} for inputs")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Let in-flight chunks finish and stop the dispatch loop.
    """
    logger.info("Ingestor service shutting down...")

    dispatch_loop = get_dispatch_loop()
    if dispatch_loop:
        await dispatch_loop.stop()
        set_dispatch_loop(None)
        logger.info("Dispatch loop stopped")


def _error_response(request: Request, exc: Exception, status_code: int, code: str) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    log = logger.error if status_code >= 500 else logger.warning
    log(f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}")
    return JSONResponse(status_code=status_code, content=ErrorResponse(detail=str(exc), code=code).model_dump())


@app.exception_handler(UnsupportedInputError)
async def unsupported_input_handler(request: Request, exc: UnsupportedInputError):
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "UNSUPPORTED_INPUT")


@app.exception_handler(InvalidSettingsError)
async def invalid_settings_handler(request: Request, exc: InvalidSettingsError):
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_SETTINGS")


@app.exception_handler(FileRecordNotFoundError)
async def file_not_found_handler(request: Request, exc: FileRecordNotFoundError):
    return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "FILE_NOT_FOUND")


@app.exception_handler(FileRecordBusyError)
async def file_busy_handler(request: Request, exc: FileRecordBusyError):
    return _error_response(request, exc, status.HTTP_409_CONFLICT, "FILE_BUSY")


@app.exception_handler(CheckpointStoreError)
async def checkpoint_store_handler(request: Request, exc: CheckpointStoreError):
    return _error_response(request, exc, status.HTTP_503_SERVICE_UNAVAILABLE, "STORAGE_UNAVAILABLE")


@app.exception_handler(InputStorageError)
async def input_storage_handler(request: Request, exc: InputStorageError):
    return _error_response(request, exc, status.HTTP_503_SERVICE_UNAVAILABLE, "INPUT_UNAVAILABLE")


@app.exception_handler(IngestError)
async def ingest_exception_handler(request: Request, exc: IngestError):
    return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR")


app.include_router(file_router)
app.include_router(config_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "Knowledge Ingestor API", "status": "running"}


@app.get("/ready")
async def ready_check():
    """
    Readiness check endpoint.
    Returns 200 when the database answers and the dispatch loop is running.
    """
    try:
        with get_db_connection() as conn:
            conn.execute("SELECT 1")
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {str(e)}"

    dispatch_loop = get_dispatch_loop()
    loop_status = "ok" if dispatch_loop is not None and dispatch_loop.running else "stopped"

    ready = db_status == "ok" and loop_status == "ok"
    status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "ready": ready,
            "database": db_status,
            "dispatch_loop": loop_status
        }
    )


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "ingestor.main:app",
        host=config.INGEST_HOST,
        port=config.INGEST_PORT,
    )


if __name__ == "__main__":
    main()
