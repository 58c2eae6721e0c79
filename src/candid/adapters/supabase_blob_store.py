"""Supabase Storage blob store for photo bytes."""

import logging
from dataclasses import dataclass
from uuid import uuid4

from supabase import Client

from candid.services.photos import BlobStore

_logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/heic": "heic",
}


@dataclass
class SupabaseBlobStore(BlobStore):
    """Stores photos in a Storage bucket and issues signed URLs."""

    client: Client
    bucket: str
    signed_url_ttl_seconds: int = 3600

    def put_blob(self, data: bytes, content_type: str) -> str:
        """Upload bytes under a fresh object path and return the path."""
        extension = _EXTENSIONS.get(content_type, "bin")
        path = f"{uuid4()}.{extension}"
        self.client.storage.from_(self.bucket).upload(
            path, data, {"content-type": content_type}
        )
        return path

    def get_url(self, ref: str) -> str | None:
        """Return a signed URL, or None when the object cannot be resolved yet."""
        try:
            response = self.client.storage.from_(self.bucket).create_signed_url(
                ref, self.signed_url_ttl_seconds
            )
        except Exception:
            _logger.warning("Signed URL unavailable: ref=%s", ref, exc_info=True)
            return None
        return response.get("signedURL") or response.get("signedUrl")

    def delete_blob(self, ref: str) -> None:
        """Remove an object from the bucket."""
        self.client.storage.from_(self.bucket).remove([ref])
