"""Google Cloud Storage blob backend (JSON API over httpx)."""

from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from bucket_repo.exceptions import StorageError
from bucket_repo.protocols import BlobMetadata

DEFAULT_ENDPOINT = "https://storage.googleapis.com"
DEFAULT_TIMEOUT = 30.0
PAGE_SIZE = 1000


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _to_metadata(item: dict[str, Any]) -> BlobMetadata:
    name = item["name"]
    return BlobMetadata(
        key=name,
        size=int(item.get("size", 0)),
        etag=item.get("etag"),
        created=_parse_timestamp(item.get("timeCreated")),
        content_type=item.get("contentType"),
        is_directory=name.endswith("/"),
    )


class GCSBlobStore:
    """Google Cloud Storage backend.

    Talks to the JSON API directly. An access token is sent as a bearer
    token when configured; without one the store works against emulators
    and public buckets.
    """

    def __init__(
        self,
        bucket: str | None = None,
        access_token: str | None = None,
        endpoint: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize GCS blob store.

        Args:
            bucket: Bucket name
            access_token: OAuth2 access token for the storage API
            endpoint: API endpoint (for emulators). Defaults to Google's
            timeout: Request timeout in seconds
            transport: Custom httpx transport (testing)
            **kwargs: Ignored
        """
        if not bucket:
            raise ValueError("GCSBlobStore requires a bucket name.")

        self.bucket = bucket
        self.access_token = access_token
        self.endpoint = (endpoint or DEFAULT_ENDPOINT).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return httpx.AsyncClient(
            base_url=self.endpoint,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    def _object_path(self, key: str) -> str:
        return f"/storage/v1/b/{quote(self.bucket, safe='')}/o/{quote(key, safe='')}"

    async def get(self, key: str) -> BlobMetadata | None:
        """Get blob metadata."""
        try:
            async with self._client() as client:
                response = await client.get(self._object_path(key))
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                return _to_metadata(response.json())
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to get {key}: {e}") from e

    async def list(self, prefix: str, current_directory: bool = True) -> list[BlobMetadata]:
        """List the first page of blobs under a prefix.

        In current-directory mode the API's "prefixes" become directory entries.
        """
        params: dict[str, Any] = {"prefix": prefix, "maxResults": PAGE_SIZE}
        if current_directory:
            params["delimiter"] = "/"
            params["includeTrailingDelimiter"] = "true"

        try:
            async with self._client() as client:
                response = await client.get(
                    f"/storage/v1/b/{quote(self.bucket, safe='')}/o",
                    params=params,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to list {prefix!r}: {e}") from e

        blobs = {item["name"]: _to_metadata(item) for item in data.get("items", [])}
        for name in data.get("prefixes", []):
            if name not in blobs:
                blobs[name] = BlobMetadata(key=name, size=0, is_directory=True)
        return [blobs[name] for name in sorted(blobs)]

    async def read(self, key: str) -> AsyncIterator[bytes]:
        """Stream blob content."""
        try:
            async with self._client() as client:
                async with client.stream(
                    "GET", self._object_path(key), params={"alt": "media"}
                ) as response:
                    response.raise_for_status()
                    async for chunk in response.aiter_bytes():
                        yield chunk
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    async def put(
        self,
        key: str,
        content: bytes,
        content_type: str | None = None,
    ) -> BlobMetadata:
        """Create or overwrite a blob with a simple media upload."""
        headers = {"Content-Type": content_type or "application/octet-stream"}
        try:
            async with self._client() as client:
                response = await client.post(
                    f"/upload/storage/v1/b/{quote(self.bucket, safe='')}/o",
                    params={"uploadType": "media", "name": key},
                    content=content,
                    headers=headers,
                )
                response.raise_for_status()
                return _to_metadata(response.json())
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to put {key}: {e}") from e

    async def delete(self, key: str) -> None:
        """Delete a blob. Missing blobs are ignored."""
        try:
            async with self._client() as client:
                response = await client.delete(self._object_path(key))
                if response.status_code == 404:
                    return
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e
