"""File record API routes."""

from typing import Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse

from common.logging_config import get_logger
from ingestor.chunker import chunk, identify
from ingestor.exceptions import FileRecordNotFoundError, InputStorageError, UnsupportedInputError
from ingestor.schemas.files import (
    DeleteFileResponse,
    FileRecordResponse,
    ListFilesResponse,
    UploadFileResponse,
)
from ingestor.service_locator import (
    get_checkpoint_store,
    get_dispatch_loop,
    get_lifecycle,
    get_settings_store,
    get_source,
)
from ingestor.sources import is_accepted_name
from ingestor.types import FileStatus

logger = get_logger(__name__)

router = APIRouter(prefix="/files", tags=["Files"])


@router.get("", response_model=ListFilesResponse)
async def list_files(
    status_filter: Optional[FileStatus] = Query(None, alias="status", description="Only records in this status")
):
    """
    List file records with their chunk progress.

    Parameters:
        - status: Optional status filter (queued, processing, completed, failed)

    Returns:
        - files: Records newest first, each with completed_chunks/total_chunks
    """
    records = get_checkpoint_store().list_file_records(status_filter)
    return ListFilesResponse(files=[FileRecordResponse.from_record(record) for record in records])


@router.get("/{content_hash}", response_model=FileRecordResponse)
async def get_file(content_hash: str):
    """
    Get one file record by content hash.

    Raises:
        - 404: No record for this content hash
    """
    record = get_checkpoint_store().get_file_record(content_hash)
    if record is None:
        raise FileRecordNotFoundError(f"No file record for {content_hash}")
    return FileRecordResponse.from_record(record)


@router.delete("/{content_hash}", response_model=DeleteFileResponse)
async def delete_file(content_hash: str):
    """
    Delete a completed or failed file record.

    Deleting a record allows byte-identical content to be ingested again.

    Raises:
        - 404: No record for this content hash
        - 409: Record is still queued or processing
    """
    record = get_lifecycle().delete_record(content_hash)
    return DeleteFileResponse(content_hash=record.content_hash, filename=record.filename, deleted=True)


@router.post(
    "",
    response_model=UploadFileResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={status.HTTP_200_OK: {"model": UploadFileResponse}},
)
async def upload_file(file: UploadFile = File(...)):
    """
    Submit a text file for ingestion.

    The file is placed in the watch directory and a queued record is created
    right away so callers can poll its status. Content that already has a
    record is not written again.

    Returns:
        - 202 with the queued record for new content
        - 200 with the existing record (duplicate=true) for known content

    Raises:
        - 400: Unsupported file type or non-text content
        - 503: Ingestion is not initialized or the upload could not be stored
    """
    source = get_source()
    settings_store = get_settings_store()
    if source is None or settings_store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Ingestion is not initialized")

    filename = (file.filename or "").strip()
    if not filename or filename.startswith(".") or not is_accepted_name(filename):
        raise UnsupportedInputError(f"Unsupported file type: {filename or '<unnamed>'}")

    data = await file.read()
    content_hash = identify(data)
    store = get_checkpoint_store()

    existing = store.get_file_record(content_hash)
    if existing is not None:
        logger.info(
            f"Upload of {filename} matches existing record {existing.filename} "
            f"[content_hash={content_hash}] status={existing.status.value}"
        )
        response = UploadFileResponse(file=FileRecordResponse.from_record(existing), duplicate=True)
        return JSONResponse(status_code=status.HTTP_200_OK, content=response.model_dump())

    target_size = settings_store.current().chunk_target_size
    chunks = chunk(data, target_size)

    try:
        path = source.submit(filename, data)
    except OSError as e:
        raise InputStorageError(f"Could not store upload {filename}: {e}") from e

    # Input is written before its record so no queued record ever lacks an input
    record = store.upsert_file_record(content_hash, path.name, len(data), len(chunks), target_size)

    loop = get_dispatch_loop()
    if loop is not None:
        loop.wake()

    return UploadFileResponse(file=FileRecordResponse.from_record(record), duplicate=False)
