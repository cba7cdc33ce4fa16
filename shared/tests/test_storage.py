"""
Tests for storage utilities.
"""

import pytest
from unittest.mock import Mock, patch

from shared.storage import StorageClient, SIGNED_URL_EXPIRY
from shared.errors import ConfigError, PermissionDenied, PersistenceError


@pytest.fixture
def mock_supabase_storage():
    """Create a mock Supabase storage client."""
    storage = Mock()
    bucket = Mock()
    storage.from_ = Mock(return_value=bucket)
    return storage, bucket


@pytest.fixture
def storage_client(mock_supabase_storage):
    """Create a storage client with mocked Supabase."""
    storage, bucket = mock_supabase_storage

    with patch("shared.storage.create_client") as mock_create:
        mock_client = Mock()
        mock_client.storage = storage
        mock_create.return_value = mock_client

        client = StorageClient(url="https://test.supabase.co", service_key="test_key")
        return client, storage, bucket


def test_storage_client_initialization():
    """Test that storage client initializes correctly."""
    mock_client = Mock()
    mock_storage = Mock()
    mock_client.storage = mock_storage

    with patch("shared.storage.create_client", return_value=mock_client) as mock_create:
        client = StorageClient(url="https://test.supabase.co", service_key="test_key")

    assert client.storage == mock_storage
    mock_create.assert_called_once_with("https://test.supabase.co", "test_key")


def test_storage_client_requires_credentials():
    """Test that missing credentials raise ConfigError."""
    with patch("shared.storage.settings") as mock_settings:
        mock_settings.supabase_url = None
        mock_settings.supabase_service_key = None

        with pytest.raises(ConfigError, match="SUPABASE_URL and SUPABASE_SERVICE_KEY are required"):
            StorageClient()


def test_storage_client_initialization_failure():
    """Test that ConfigError is raised on initialization failure."""
    with patch("shared.storage.create_client", side_effect=Exception("Connection failed")):
        with pytest.raises(ConfigError, match="Failed to initialize storage client"):
            StorageClient(url="https://test.supabase.co", service_key="test_key")


@pytest.mark.asyncio
async def test_storage_upload_file(storage_client):
    """Test uploading a file returns the signed URL."""
    client, _, bucket = storage_client

    bucket.upload = Mock(return_value={"path": "Downloads/slideshow_1.mp4"})
    bucket.create_signed_url = Mock(return_value={"signedURL": "https://test.supabase.co/signed/slideshow_1.mp4"})

    url = await client.upload_file(
        bucket="slideshow-exports",
        path="Downloads/slideshow_1.mp4",
        file_data=b"video",
        content_type="video/mp4"
    )

    assert url == "https://test.supabase.co/signed/slideshow_1.mp4"
    bucket.upload.assert_called_once_with(
        path="Downloads/slideshow_1.mp4",
        file=b"video",
        file_options={"content-type": "video/mp4"}
    )
    bucket.create_signed_url.assert_called_once_with("Downloads/slideshow_1.mp4", SIGNED_URL_EXPIRY)


@pytest.mark.asyncio
async def test_storage_upload_falls_back_to_public_url(storage_client):
    """Test that an empty signed URL response falls back to the public URL."""
    client, _, bucket = storage_client

    bucket.upload = Mock()
    bucket.create_signed_url = Mock(return_value={})
    bucket.get_public_url = Mock(return_value="https://test.supabase.co/public/slideshow_1.mp4")

    url = await client.upload_file("slideshow-exports", "slideshow_1.mp4", b"video")

    assert url == "https://test.supabase.co/public/slideshow_1.mp4"
    assert bucket.upload.call_args.kwargs["file_options"] == {"content-type": "video/mp4"}


@pytest.mark.asyncio
async def test_storage_upload_auth_error(storage_client):
    """Test that an authorization failure becomes PermissionDenied."""
    client, _, bucket = storage_client
    bucket.upload = Mock(side_effect=Exception("403 Forbidden: new row violates row-level security policy"))

    with pytest.raises(PermissionDenied):
        await client.upload_file("slideshow-exports", "slideshow_1.mp4", b"video")


@pytest.mark.asyncio
async def test_storage_upload_other_error(storage_client):
    """Test that other storage failures become PersistenceError."""
    client, _, bucket = storage_client
    bucket.upload = Mock(side_effect=Exception("Connection reset"))

    with pytest.raises(PersistenceError, match="Connection reset"):
        await client.upload_file("slideshow-exports", "slideshow_1.mp4", b"video")


@pytest.mark.asyncio
async def test_ensure_bucket_existing(storage_client):
    """Test that an existing bucket is not recreated."""
    client, storage, _ = storage_client
    existing = Mock()
    existing.name = "slideshow-exports"
    storage.list_buckets = Mock(return_value=[existing])
    storage.create_bucket = Mock()

    await client.ensure_bucket("slideshow-exports")

    storage.create_bucket.assert_not_called()


@pytest.mark.asyncio
async def test_ensure_bucket_creates_missing(storage_client):
    """Test that a missing bucket is created private."""
    client, storage, _ = storage_client
    storage.list_buckets = Mock(return_value=[])
    storage.create_bucket = Mock()

    await client.ensure_bucket("slideshow-exports")

    storage.create_bucket.assert_called_once_with("slideshow-exports", options={"public": False})


@pytest.mark.asyncio
async def test_ensure_bucket_unauthorized(storage_client):
    client, storage, _ = storage_client
    error = Exception("denied")
    error.status = 401
    storage.list_buckets = Mock(side_effect=error)

    with pytest.raises(PermissionDenied):
        await client.ensure_bucket("slideshow-exports")
