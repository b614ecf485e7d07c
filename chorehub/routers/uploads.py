"""Upload router.

Endpoints for chore photo uploads.  The returned URL is what clients pass as
``photo_url`` when completing a chore or attaching a photo.
"""

import logging
import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status
from fastapi.responses import FileResponse

from chorehub.config import settings
from chorehub.core.dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["Uploads"])

ALLOWED_TYPES = {"image/jpeg", "image/png", "image/webp"}
_EXTENSIONS = {"image/jpeg": ".jpg", "image/png": ".png", "image/webp": ".webp"}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB


def _get_upload_dir() -> Path:
    """Get or create the upload directory."""
    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir


@router.post("/photo", status_code=status.HTTP_201_CREATED)
async def upload_photo(
    file: UploadFile,
    current_user=Depends(get_current_user),
):
    """Upload a chore photo.

    Returns the URL path to access the uploaded file.
    """
    if file.content_type not in ALLOWED_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type not allowed. Allowed: {', '.join(sorted(ALLOWED_TYPES))}",
        )

    content = await file.read()
    if len(content) > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size: {MAX_FILE_SIZE // (1024 * 1024)} MB",
        )

    filename = f"{uuid.uuid4()}{_EXTENSIONS[file.content_type]}"
    file_path = _get_upload_dir() / filename
    file_path.write_bytes(content)
    logger.info("Photo uploaded: %s by user=%s (%d bytes)", filename, current_user.id, len(content))

    return {
        "filename": filename,
        "url": f"{settings.API_V1_PREFIX}/uploads/files/{filename}",
        "size": len(content),
        "content_type": file.content_type,
    }


@router.get("/files/{filename}")
async def get_uploaded_file(
    filename: str,
    current_user=Depends(get_current_user),
):
    """Serve an uploaded file."""
    # Prevent path traversal
    if "/" in filename or "\\" in filename or ".." in filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid filename",
        )

    file_path = _get_upload_dir() / filename

    if not file_path.exists():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )

    return FileResponse(file_path)
