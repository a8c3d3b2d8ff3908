import logging
from typing import List

import httpx
from storage3.utils import StorageException

from lib.error_handler import DatabaseError

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 100
STORAGE_ERRORS = (StorageException, httpx.HTTPError)


class StorageService:
    def __init__(self, supabase_client):
        self.supabase = supabase_client

    def upload(self, bucket: str, path: str, data: bytes, content_type: str, upsert: bool = True) -> str:
        """Upload bytes to a bucket and return the object's public URL"""
        logger.info(f"Uploading {len(data)} bytes to {bucket}/{path}")
        try:
            self.supabase.storage.from_(bucket).upload(
                path,
                data,
                {'content-type': content_type, 'upsert': 'true' if upsert else 'false'}
            )
        except STORAGE_ERRORS as e:
            logger.error(f"Failed to upload {bucket}/{path}: {str(e)}")
            raise DatabaseError(f"Failed to upload to storage: {str(e)}")

        return self.supabase.storage.from_(bucket).get_public_url(path)

    def download(self, bucket: str, path: str) -> bytes:
        try:
            data = self.supabase.storage.from_(bucket).download(path)
        except STORAGE_ERRORS as e:
            logger.error(f"Failed to download {bucket}/{path}: {str(e)}")
            raise DatabaseError(f"Failed to download audio file: {str(e)}")

        if not data:
            raise DatabaseError("No audio data received from storage")
        return data

    def remove_folder(self, bucket: str, folder: str) -> int:
        """
        Best-effort removal of every object directly under folder.

        Failures are logged and swallowed; returns how many objects were removed.
        """
        try:
            paths = self._list_folder(bucket, folder)
        except STORAGE_ERRORS as e:
            logger.warning(f"Error listing {bucket} files under {folder}: {str(e)}")
            return 0

        if not paths:
            return 0

        try:
            self.supabase.storage.from_(bucket).remove(paths)
        except STORAGE_ERRORS as e:
            logger.warning(f"Error deleting {bucket} files {paths}: {str(e)}")
            return 0

        logger.info(f"Deleted {len(paths)} files from {bucket}")
        return len(paths)

    def _list_folder(self, bucket: str, folder: str) -> List[str]:
        paths: List[str] = []
        offset = 0
        while True:
            page = self.supabase.storage.from_(bucket).list(
                folder, {'limit': LIST_PAGE_SIZE, 'offset': offset}
            ) or []
            paths.extend(f"{folder}/{item['name']}" for item in page if item.get('name'))
            if len(page) < LIST_PAGE_SIZE:
                return paths
            offset += LIST_PAGE_SIZE
