import os
import uuid

from ...config import settings
from ...application.ports.storage_repo import StorageRepository


class LocalStorageRepository(StorageRepository):
    def __init__(self, upload_dir: str = None, base_url: str = None) -> None:
        self.upload_dir = upload_dir or settings.UPLOAD_DIR
        self.base_url = (base_url or settings.BASE_URL).rstrip("/")

    def save_bytes(self, subdir: str, filename: str, data: bytes) -> str:
        ext = os.path.splitext(filename or "")[1].lower() or ".jpg"
        stored_name = f"{uuid.uuid4().hex}{ext}"
        dest_dir = os.path.join(self.upload_dir, subdir) if subdir else self.upload_dir
        os.makedirs(dest_dir, exist_ok=True)
        with open(os.path.join(dest_dir, stored_name), "wb") as f:
            f.write(data)
        relative = f"{subdir}/{stored_name}" if subdir else stored_name
        return f"{self.base_url}/uploads/{relative}"
