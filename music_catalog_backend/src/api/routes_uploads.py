"""
Upload endpoint for artist images, album covers and genre images:
- POST /api/upload/image (multipart) -> {"url": ...}

The returned URL is then sent as `image` / `coverUrl` when creating the entity.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from starlette.status import HTTP_201_CREATED

from src.api.deps import get_image_uploader
from src.api.schemas import UploadResponse
from src.api.uploads import ImageUploader, UploadedFile, validate_image

router = APIRouter(prefix="/api/upload", tags=["Uploads"])


@router.post(
    "/image",
    response_model=UploadResponse,
    status_code=HTTP_201_CREATED,
    summary="Upload an image",
    description="Stores an image with the image provider and returns its public URL.",
    operation_id="upload_image",
)
async def upload_image(
    file: UploadFile = File(..., description="Image file (multipart/form-data)."),
    image_uploader: ImageUploader = Depends(get_image_uploader),
) -> UploadResponse:
    image = UploadedFile(
        filename=file.filename or "image",
        content_type=(file.content_type or "application/octet-stream").lower(),
        content=await file.read(),
    )
    validate_image(image)
    return UploadResponse(url=await image_uploader.upload(image))
