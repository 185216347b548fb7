"""File router: upload (with background ingestion), list and delete."""

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from server.models.responses import FileResponse
from shared.dependencies.auth import verify_api_key
from shared.models.chunk import IngestionRequest
from shared.models.file import FileRecord

file_router = APIRouter(prefix="/files", tags=["Files"], dependencies=[Depends(verify_api_key)])


def _to_response(record: FileRecord) -> FileResponse:
    return FileResponse(file_id=record.file_id, original_name=record.original_name, mime_type=record.mime_type, size=record.size)


@file_router.post("", response_model=FileResponse, status_code=201)
async def handle_upload(request: Request, owner_id: str = Form(...), file: UploadFile = File(...)) -> FileResponse:
    """Store an upload and schedule its ingestion.

    Ingestion runs in the background; the first RAG question about the file
    waits for it if it is still running.
    """
    services = request.app.state.services
    content = await file.read()
    record = await services.files.store_upload(owner_id, file.filename or "", content, file.content_type)
    services.ingestion.ingest_detached(
        record.path,
        IngestionRequest(owner_id=owner_id, file_id=record.file_id, original_name=record.original_name, mime_type=record.mime_type),
    )
    return _to_response(record)


@file_router.get("", response_model=list[FileResponse])
async def handle_list(request: Request, owner_id: str) -> list[FileResponse]:
    return [_to_response(record) for record in request.app.state.services.files.list_files(owner_id)]


@file_router.delete("/{file_id}", status_code=204)
async def handle_delete(request: Request, file_id: str, owner_id: str) -> None:
    services = request.app.state.services
    await services.files.remove(file_id, owner_id)
    await services.ingestion.delete_file(file_id)
    request.app.state.logging.info("Deleted file %s of owner %s.", file_id, owner_id)
