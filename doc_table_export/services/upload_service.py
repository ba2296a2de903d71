import re
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from ..config import settings
from ..exceptions import InputRejected
from ..models.schemas import UploadedFile
from ..utils.logging import logger
from .render_service import current_millis

EXTENSION_MIME_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
MAX_BASE_NAME_LENGTH = 100


def mime_type_for(filename: str) -> Optional[str]:
    """Map a filename to its MIME type by extension; None when unsupported."""
    return EXTENSION_MIME_TYPES.get(Path(filename).suffix.lower())


def safe_base_name(filename: str) -> str:
    stem = Path(filename.replace("\\", "/")).stem
    cleaned = _UNSAFE_NAME_CHARS.sub("_", stem).strip("._")
    return cleaned[:MAX_BASE_NAME_LENGTH] or "upload"


class UploadService:
    """Persists an uploaded document into the upload directory."""

    def __init__(self, storage_root: Optional[Path] = None, max_file_size_mb: Optional[int] = None) -> None:
        self.storage_root = Path(storage_root) if storage_root else settings.upload_dir_path
        self.max_file_size_mb = max_file_size_mb or settings.MAX_FILE_SIZE_MB

    async def persist(self, upload: Optional[UploadFile]) -> UploadedFile:
        if upload is None or not upload.filename:
            raise InputRejected("No file uploaded.")

        original_filename = upload.filename
        extension = Path(original_filename).suffix.lower()
        mime_type = mime_type_for(original_filename)
        if mime_type is None:
            logger.log_error("unsupported_file_extension", {
                "filename": original_filename,
                "extension": extension
            })
            raise InputRejected(f"Unsupported file type: {extension or 'none'}")

        file_bytes = await upload.read()
        max_bytes = self.max_file_size_mb * 1024 * 1024
        if len(file_bytes) > max_bytes:
            logger.log_error("file_too_large", {
                "filename": original_filename,
                "size_bytes": len(file_bytes),
                "max_bytes": max_bytes
            })
            raise InputRejected(
                f"File '{original_filename}' exceeds the maximum size of {self.max_file_size_mb} MB"
            )

        created_at = current_millis()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        stored_path = self.storage_root / f"{created_at}-{uuid.uuid4().hex[:8]}{extension}"
        with stored_path.open("wb") as output:
            output.write(file_bytes)

        uploaded = UploadedFile(
            path=stored_path,
            mime_type=mime_type,
            original_filename=original_filename,
            base_name=safe_base_name(original_filename),
            created_at=created_at,
        )
        logger.log_step("document_uploaded", {
            "original_filename": original_filename,
            "stored_path": str(stored_path),
            "mime_type": mime_type,
            "size_bytes": len(file_bytes)
        })
        return uploaded


upload_service = UploadService()
