"""
Storage utilities.

Supabase Storage operations backing the cloud media library.
"""

import asyncio
import mimetypes
from typing import Any, Callable, Optional
from supabase import create_client
from shared.config import settings
from shared.errors import ConfigError, PermissionDenied, PersistenceError
from shared.logging import get_logger

logger = get_logger("storage")

# Signed URLs for committed exports stay valid for a year
SIGNED_URL_EXPIRY = 31536000


def _is_auth_error(error: Exception) -> bool:
    """Detect Supabase authorization failures (missing or rejected grant)."""
    message = str(error).lower()
    status = getattr(error, "status", None) or getattr(error, "status_code", None)
    if str(status) in ("401", "403"):
        return True
    return any(marker in message for marker in ("unauthorized", "forbidden", "permission", "row-level security"))


class StorageClient:
    """Supabase Storage client for file operations."""

    def __init__(self, url: Optional[str] = None, service_key: Optional[str] = None):
        """
        Initialize storage client.

        Args:
            url: Supabase project URL (defaults to settings.supabase_url)
            service_key: Service key (defaults to settings.supabase_service_key)
        """
        url = url or settings.supabase_url
        service_key = service_key or settings.supabase_service_key
        if not url or not service_key:
            raise ConfigError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required for cloud storage")
        try:
            self.client = create_client(url, service_key)
            self.storage = self.client.storage
        except Exception as e:
            raise ConfigError(f"Failed to initialize storage client: {str(e)}") from e

    async def _execute_sync(self, func: Callable[[], Any]) -> Any:
        """
        Execute a synchronous Supabase storage operation in an async context.

        Args:
            func: Synchronous function to execute

        Returns:
            Function result
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    def _detect_content_type(self, path: str, default: Optional[str] = None) -> str:
        content_type, _ = mimetypes.guess_type(path)
        if content_type:
            return content_type
        return default or "application/octet-stream"

    def _translate(self, action: str, error: Exception) -> Exception:
        if _is_auth_error(error):
            return PermissionDenied(f"Storage access denied while trying to {action}: {error}")
        return PersistenceError(f"Failed to {action}: {error}")

    async def ensure_bucket(self, bucket: str) -> None:
        """
        Create the bucket if it does not exist yet.

        Raises:
            PermissionDenied: If the service key may not list or create buckets
            PersistenceError: On any other storage failure
        """
        try:
            buckets = await self._execute_sync(self.storage.list_buckets)
            names = {getattr(b, "name", None) or getattr(b, "id", None) for b in buckets or []}
            if bucket in names:
                return

            def _create():
                return self.storage.create_bucket(bucket, options={"public": False})

            await self._execute_sync(_create)
            logger.info(f"Created storage bucket {bucket}", extra={"bucket": bucket})
        except Exception as e:
            logger.error(
                f"Failed to ensure bucket {bucket}: {str(e)}",
                extra={"bucket": bucket, "error": str(e)}
            )
            raise self._translate(f"ensure bucket {bucket}", e) from e

    async def upload_file(
        self,
        bucket: str,
        path: str,
        file_data: bytes,
        content_type: Optional[str] = None
    ) -> str:
        """
        Upload a file to Supabase Storage.

        Args:
            bucket: Storage bucket name
            path: File path in bucket
            file_data: File data as bytes
            content_type: Content type (auto-detected if not provided)

        Returns:
            Signed URL of uploaded file, falling back to the public URL

        Raises:
            PermissionDenied: If the upload is rejected for lack of access
            PersistenceError: On any other storage failure
        """
        try:
            if not content_type:
                content_type = self._detect_content_type(path)

            def _upload():
                return self.storage.from_(bucket).upload(
                    path=path,
                    file=file_data,
                    file_options={"content-type": content_type}
                )

            await self._execute_sync(_upload)

            def _get_url():
                signed_url_response = self.storage.from_(bucket).create_signed_url(
                    path,
                    SIGNED_URL_EXPIRY
                )
                if isinstance(signed_url_response, dict):
                    return signed_url_response.get("signedURL") or signed_url_response.get("signedUrl") or ""
                return str(signed_url_response) if signed_url_response else ""

            file_url = await self._execute_sync(_get_url)

            if not file_url:
                def _get_public_url():
                    return self.storage.from_(bucket).get_public_url(path)
                file_url = await self._execute_sync(_get_public_url)

            logger.info(
                f"Uploaded file to {bucket}/{path}",
                extra={"bucket": bucket, "path": path, "size": len(file_data)}
            )

            return file_url

        except Exception as e:
            logger.error(
                f"Failed to upload file to {bucket}/{path}: {str(e)}",
                extra={"bucket": bucket, "path": path, "error": str(e)}
            )
            raise self._translate(f"upload {bucket}/{path}", e) from e
