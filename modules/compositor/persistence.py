"""
Persistence for compositor module.

Commits finished exports into a user-browsable collection, either a local
media library directory or a Supabase Storage bucket.
"""
import shutil
from pathlib import Path
from typing import Optional, Protocol

from shared.config import settings
from shared.errors import PermissionDenied, PersistenceError
from shared.logging import get_logger
from shared.models.export import PersistedVideo
from shared.storage import StorageClient

logger = get_logger("compositor.persistence")


class MediaLibrary(Protocol):
    """Durable, user-visible storage with album/collection semantics."""

    async def ensure_collection(self, name: str) -> str:
        ...

    async def commit(self, path: Path) -> PersistedVideo:
        ...


class LocalMediaLibrary:
    """Media library backed by a directory tree, one directory per collection."""

    def __init__(
        self,
        root: Optional[Path] = None,
        collection: Optional[str] = None,
        permission_granted: bool = True
    ):
        self.root = Path(root or settings.library_root)
        self.collection = collection or settings.library_collection
        self.permission_granted = permission_granted

    def _check_permission(self) -> None:
        if not self.permission_granted:
            raise PermissionDenied("Media library access has not been granted")

    async def ensure_collection(self, name: str) -> str:
        """Create the collection directory if absent. Returns its path."""
        self._check_permission()
        collection_dir = self.root / name
        try:
            collection_dir.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise PermissionDenied(f"Cannot create collection {name}: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Cannot create collection {name}: {e}") from e
        return str(collection_dir)

    async def commit(self, path: Path) -> PersistedVideo:
        """
        Copy a finished file into the collection without overwriting.

        Raises:
            PermissionDenied: If access is not granted
            PersistenceError: If the source is missing or the copy fails
        """
        self._check_permission()
        path = Path(path)
        if not path.is_file():
            raise PersistenceError(f"Nothing to commit, file missing: {path}")

        collection_dir = Path(await self.ensure_collection(self.collection))
        target = collection_dir / path.name
        counter = 1
        while target.exists():
            target = collection_dir / f"{path.stem}_{counter}{path.suffix}"
            counter += 1

        try:
            shutil.copy2(path, target)
        except PermissionError as e:
            raise PermissionDenied(f"Cannot write to collection {self.collection}: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Failed to commit {path} to {self.collection}: {e}") from e

        logger.info(
            f"Committed {path.name} to collection {self.collection}",
            extra={"path": str(target), "collection": self.collection}
        )
        return PersistedVideo(
            path=str(target),
            collection=self.collection,
            location=f"{self.collection}/{target.name}"
        )


class SupabaseMediaLibrary:
    """Media library backed by Supabase Storage; collections are key prefixes in one bucket."""

    def __init__(
        self,
        storage: Optional[StorageClient] = None,
        bucket: Optional[str] = None,
        collection: Optional[str] = None
    ):
        self.storage = storage or StorageClient()
        self.bucket = bucket or settings.storage_bucket
        self.collection = collection or settings.library_collection

    async def ensure_collection(self, name: str) -> str:
        # Prefixes need no creation; the bucket does
        await self.storage.ensure_bucket(self.bucket)
        return f"{self.bucket}/{name}"

    async def commit(self, path: Path) -> PersistedVideo:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"Cannot read export {path}: {e}") from e

        await self.ensure_collection(self.collection)
        key = f"{self.collection}/{path.name}"
        url = await self.storage.upload_file(
            bucket=self.bucket,
            path=key,
            file_data=data,
            content_type="video/mp4"
        )
        return PersistedVideo(path=str(path), collection=self.collection, location=url)


def default_library() -> MediaLibrary:
    """Supabase-backed library when configured, local directory otherwise."""
    if settings.supabase_enabled:
        return SupabaseMediaLibrary()
    return LocalMediaLibrary()
