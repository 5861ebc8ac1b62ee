import logging
import os
from typing import Optional, Protocol

from supabase import Client, create_client

from fitting_portal.services.file_service import content_type_for, sanitize_filename
from fitting_portal.settings import settings

logger = logging.getLogger(__name__)

SERVE_URL_PREFIX = "/api/photos/serve/"


class StorageError(RuntimeError):
    pass


class PhotoStorage(Protocol):
    def save(self, data: bytes, filename: str, content_type: str) -> str:
        """저장 후 클라이언트가 접근할 URL 반환."""
        ...

    def delete(self, filename: str) -> bool:
        ...


class LocalStorage:
    """upload_dir 아래에 파일을 저장하고 /api/photos/serve/<filename> URL을 돌려준다."""

    def __init__(self, upload_dir: str):
        self.upload_dir = upload_dir

    def ensure_dir(self) -> None:
        os.makedirs(self.upload_dir, exist_ok=True)

    def path_for(self, filename: str) -> str:
        return os.path.join(self.upload_dir, sanitize_filename(filename))

    def save(self, data: bytes, filename: str, content_type: str) -> str:
        self.ensure_dir()
        path = self.path_for(filename)
        try:
            with open(path, "wb") as fp:
                fp.write(data)
        except OSError as e:
            logger.error(f"Failed to save file {filename}: {e}")
            raise StorageError("Failed to save file") from e
        return f"{SERVE_URL_PREFIX}{os.path.basename(path)}"

    def delete(self, filename: str) -> bool:
        try:
            os.remove(self.path_for(filename))
            return True
        except OSError as e:
            logger.error(f"Error deleting file {filename}: {e}")
            return False

    def exists(self, filename: str) -> bool:
        return os.path.isfile(self.path_for(filename))


class SupabaseStorage:
    def __init__(self, url: str, key: str, bucket: str, path_prefix: str = "uploads"):
        self.url = url
        self.key = key
        self.bucket = bucket
        self.path_prefix = path_prefix

        if not self.url or not self.key:
            logger.warning("Supabase credentials not set. Storage service disabled.")
            self.client: Optional[Client] = None
        else:
            self.client = create_client(self.url, self.key)

    def save(self, data: bytes, filename: str, content_type: str) -> str:
        if not self.client:
            raise StorageError("Supabase client is not initialized.")

        file_path = f"{self.path_prefix}/{filename}"
        try:
            self.client.storage.from_(self.bucket).upload(
                path=file_path,
                file=data,
                file_options={"content-type": content_type or content_type_for(filename)},
            )
            return self.client.storage.from_(self.bucket).get_public_url(file_path)
        except Exception as e:
            logger.error(f"Failed to upload image to Supabase: {e}")
            raise StorageError("Failed to save file") from e

    def delete(self, filename: str) -> bool:
        if not self.client:
            return False
        try:
            self.client.storage.from_(self.bucket).remove([f"{self.path_prefix}/{filename}"])
            return True
        except Exception as e:
            logger.error(f"Failed to delete image from Supabase: {e}")
            return False


def get_local_storage() -> LocalStorage:
    return LocalStorage(settings.upload_dir)


def get_storage() -> PhotoStorage:
    if settings.storage_backend == "supabase":
        return SupabaseStorage(settings.supabase_url, settings.supabase_service_role_key, settings.supabase_bucket)
    return get_local_storage()
