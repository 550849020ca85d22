from fastapi import UploadFile
from config import get_supabase_storage, SUPABASE_STORAGE_BUCKET, MAX_UPLOAD_BYTES, SIGNED_URL_EXPIRES_SECONDS
from utils.errors import ValidationError
from urllib.parse import urlparse, unquote
import base64
import os
import re
import time
import uuid
import logging

logger = logging.getLogger(__name__)

IMAGE_FOLDERS = {"avatar": "avatars", "product": "products"}

# /storage/v1/object/{public|sign|authenticated}/{bucket}/{path}
STORAGE_PATH_PATTERN = re.compile(r"/storage/v1/object/(?:public|sign|authenticated)/([^/]+)/(.+)$")


class UploadHelpers:
    """Helper functions for image uploads to Supabase Storage"""

    def __init__(self):
        self._storage = None

    @property
    def storage(self):
        if self._storage is None:
            self._storage = get_supabase_storage()
        return self._storage

    def folder_for(self, image_type: str = None) -> str:
        return IMAGE_FOLDERS.get(image_type or "product", "products")

    async def read_image(self, file: UploadFile) -> bytes:
        if file is None:
            raise ValidationError("Please choose an image to upload")

        if not (file.content_type or "").startswith("image/"):
            raise ValidationError("Only image files are supported")

        too_large = f"Image must be smaller than {MAX_UPLOAD_BYTES // (1024 * 1024)}MB"
        if file.size is not None and file.size > MAX_UPLOAD_BYTES:
            raise ValidationError(too_large)

        content = await file.read()
        if not content:
            raise ValidationError("The uploaded image is empty")
        if len(content) > MAX_UPLOAD_BYTES:
            raise ValidationError(too_large)

        return content

    def object_path(self, folder: str, filename: str = None) -> str:
        file_extension = os.path.splitext(filename)[1] if filename else ""
        if not file_extension:
            file_extension = ".jpg"
        return f"{folder}/{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{file_extension.lower()}"

    def sign_path(self, path: str, expires_in: int = SIGNED_URL_EXPIRES_SECONDS) -> str:
        response = self.storage.from_(SUPABASE_STORAGE_BUCKET).create_signed_url(path, expires_in)

        signed_url = None
        if isinstance(response, dict):
            signed_url = response.get("signedURL") or response.get("signedUrl")
        if not signed_url:
            raise ValueError(f"Storage did not return a signed URL for {path}")

        return signed_url

    def upload_to_storage(self, content: bytes, filename: str, content_type: str, folder: str) -> str:
        """Upload to the private bucket and return a signed URL valid for a year"""
        path = self.object_path(folder, filename)

        self.storage.from_(SUPABASE_STORAGE_BUCKET).upload(
            path=path,
            file=content,
            file_options={"content-type": content_type}
        )

        logger.info(f"Uploaded image to {SUPABASE_STORAGE_BUCKET}/{path}")
        return self.sign_path(path)

    def to_data_url(self, content: bytes, content_type: str) -> str:
        return f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"

    async def store_image(self, file: UploadFile, image_type: str = None) -> str:
        """
        Upload to storage, falling back to an inline data URL when storage is
        unavailable so the caller still gets a usable image URL.
        """
        content = await self.read_image(file)
        folder = self.folder_for(image_type)

        try:
            return self.upload_to_storage(content, file.filename, file.content_type, folder)
        except Exception as e:
            logger.warning(f"Storage upload failed, falling back to data URL: {str(e)}")
            return self.to_data_url(content, file.content_type)

    def extract_object_path(self, url: str) -> str:
        if not url or url.startswith("data:"):
            raise ValidationError("Not a storage URL")

        match = STORAGE_PATH_PATTERN.search(urlparse(url).path)
        if not match:
            raise ValidationError("Not a storage URL")

        bucket, path = match.groups()
        if bucket != SUPABASE_STORAGE_BUCKET:
            raise ValidationError(f"URL does not belong to bucket {SUPABASE_STORAGE_BUCKET}")

        return unquote(path)

    def resign_url(self, url: str) -> str:
        return self.sign_path(self.extract_object_path(url))


upload_helpers = UploadHelpers()
