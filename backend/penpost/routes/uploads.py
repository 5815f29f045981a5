"""
Penpost Backend — Uploaded Image Route
========================================

What:  Serves stored post images at /uploads/<filename>.
How:   Resolves the name inside UPLOAD_DIR through FileService.path_for, which
       rejects anything that would leave the directory, then streams the file
       with FileResponse (content type guessed from the extension).
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from penpost.dependencies import get_file_service
from penpost.exceptions import NotFoundError
from penpost.services.file_service import UPLOAD_URL_PREFIX, FileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix=UPLOAD_URL_PREFIX, tags=["Uploads"])


@router.get(
    "/{filename}",
    summary="Serve an uploaded image",
    responses={
        200: {"description": "Image file"},
        404: {"description": "File not found"},
    },
)
async def serve_upload(
    filename: str,
    file_service: FileService = Depends(get_file_service),
) -> FileResponse:
    try:
        path = file_service.path_for(filename)
    except ValueError:
        raise NotFoundError(resource="file", resource_id=filename)

    if not path.is_file():
        raise NotFoundError(resource="file", resource_id=filename)

    # Stored names are never reused, so the content never changes
    return FileResponse(path=str(path), headers={"Cache-Control": "public, max-age=86400"})
