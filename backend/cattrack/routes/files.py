"""
CatTrack Backend: Uploaded File Route
======================================

GET /uploads/{file_path} serves a stored cat image by the relative path
kept in Cat.filename. Paths that escape the storage root are rejected.
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from cattrack.schemas.common import ErrorResponse
from cattrack.services.file_service import file_service

router = APIRouter(tags=["Files"])


@router.get(
    "/uploads/{file_path:path}",
    response_class=FileResponse,
    responses={404: {"description": "No such file", "model": ErrorResponse}},
    summary="Download a stored cat image",
)
async def get_upload(file_path: str) -> FileResponse:
    return FileResponse(file_service.resolve_stored_file(file_path))
