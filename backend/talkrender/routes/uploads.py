"""
Upload endpoints.

POST /api/upload takes a multipart form with a "file" field and a "guid"
field. The body is streamed to the landing directory beside the uploads root
first, then handed to UploadPlacement.
"""

import logging
import uuid
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, File, Form, Request, UploadFile
from pydantic import BaseModel

from ..persistence import PersistenceError, UploadRecord
from ..uploads import InboundFile, UploadError, UploadTooLargeError
from .envelope import ApiResponse, error_response, ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["uploads"])


# Bytes copied per read while spooling the upload
CHUNK_SIZE = 1024 * 1024


class UploadedFileInfo(BaseModel):
    filename: str
    size: int
    mimetype: Optional[str] = None


def _spool(upload: UploadFile, tmp_dir: Path, max_bytes: int) -> InboundFile:
    """
    Copy the request file into the landing directory.

    Raises:
        UploadTooLargeError: If the body exceeds max_bytes (partial file removed)
    """
    tmp_dir.mkdir(parents=True, exist_ok=True)
    temp_path = tmp_dir / uuid.uuid4().hex
    size = 0

    try:
        with open(temp_path, "xb") as out:
            while True:
                chunk = upload.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise UploadTooLargeError(max_bytes)
                out.write(chunk)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    return InboundFile(
        temp_path=temp_path,
        original_filename=upload.filename or "",
        size=size,
        content_type=upload.content_type,
    )


@router.post("/upload", response_model=ApiResponse[UploadedFileInfo])
def upload_file(
    request: Request,
    file: Optional[UploadFile] = File(default=None),
    guid: Optional[str] = Form(default=None),
):
    """
    Upload a raw talk recording for a scheduled event.

    Raises:
        400: Missing file, invalid or unknown guid, invalid path
        409: File or record already exists for the talk, or the name is reserved
        413: File too large
        500: Record inserted but moving the file failed
    """
    settings = request.app.state.settings
    placement = request.app.state.upload_placement

    try:
        inbound = None
        if file is not None:
            inbound = _spool(file, settings.upload_tmp_dir, settings.max_upload_bytes)
        result = placement.place(inbound, guid)
    except UploadError as e:
        return error_response(e.status_code, e.message)
    except PersistenceError as e:
        logger.error(f"[Upload] Store failure: {e}")
        return error_response(500, f"Failed to upload file: {e}")

    return ok(UploadedFileInfo(filename=result.filename, size=result.size, mimetype=result.mimetype))


@router.get("/files/list", response_model=ApiResponse[List[UploadRecord]])
def list_files(request: Request):
    """List every uploaded talk with its rendered flag."""
    store = request.app.state.upload_store
    try:
        return ok(store.list_uploads())
    except PersistenceError as e:
        logger.error(f"[Upload] Failed to list uploads: {e}")
        return error_response(500, f"Failed to list uploads: {e}")
