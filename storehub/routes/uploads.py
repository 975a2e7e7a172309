"""
StoreHub Backend: Uploaded Photo Route
=======================================

What:  Serves resized store photos from the upload directory.
How:   The requested path is resolved inside the resizer's upload root and
       refused if it escapes it (../../etc/passwd).
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from storehub.dependencies import get_image_resizer
from storehub.exceptions import NotFoundError, ValidationError
from storehub.services.upload_service import ImageResizer

router = APIRouter(tags=["Uploads"])


@router.get(
    "/uploads/{file_path:path}",
    summary="Serve an uploaded store photo",
    responses={
        200: {"description": "Image file"},
        404: {"description": "File not found"},
    },
)
async def serve_upload(
    file_path: str,
    resizer: ImageResizer = Depends(get_image_resizer),
) -> FileResponse:
    upload_root = resizer.upload_dir
    full_path = (upload_root / file_path).resolve()
    if not full_path.is_relative_to(upload_root):
        raise ValidationError(message="Invalid file path", field="file_path")
    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
