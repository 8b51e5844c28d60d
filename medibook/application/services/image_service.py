import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional
from fastapi import UploadFile, HTTPException
from PIL import Image, UnidentifiedImageError

from ..ports.storage_repo import StorageRepository
from ...config import settings

logger = logging.getLogger(__name__)


@dataclass
class ImageService:
    storage: StorageRepository
    max_file_size: int = settings.MAX_FILE_SIZE
    allowed_types: List[str] = field(default_factory=lambda: list(settings.ALLOWED_IMAGE_TYPES))

    def _validate(self, data: bytes, content_type: str) -> None:
        if content_type not in self.allowed_types:
            raise HTTPException(status_code=415, detail=f"File type {content_type} not allowed")
        if len(data) > self.max_file_size:
            raise HTTPException(status_code=413, detail=f"File too large (max {self.max_file_size // (1024 * 1024)}MB)")
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError):
            raise HTTPException(status_code=400, detail="File is not a valid image")

    def upload(self, subdir: str, file: Optional[UploadFile]) -> Optional[str]:
        """Validate and store an uploaded image; returns its URL or None when no file was sent."""
        if file is None or not file.filename:
            return None
        data = file.file.read()
        file.file.seek(0)
        content_type = file.content_type or "image/jpeg"
        self._validate(data, content_type)
        url = self.storage.save_bytes(subdir, file.filename, data)
        logger.info(f"Stored {subdir} image at {url}")
        return url
