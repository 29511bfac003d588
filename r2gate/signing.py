"""Signed URL issuance and server-side ingestion by URL.

Signing is a local HMAC computation (SigV4 query signing), so issuing an
authorization never touches the store. The backend verifies the signature,
the operation and the expiry when the URL is used.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx
from loguru import logger

from r2gate.exceptions import FetchError
from r2gate.keys import new_key
from r2gate.logging_config import redact_url
from r2gate.storage import ObjectStorage, Operation

DEFAULT_FETCH_TIMEOUT = 30.0


@dataclass(frozen=True)
class UploadAuthorization:
    key: str
    url: str


class _ChunkReader:
    """Non-seekable file object over an iterator of byte chunks.

    ``read(size)`` only returns fewer than ``size`` bytes at end of stream;
    the managed transfer sizes the upload from the first read.
    """

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks = iter(chunks)
        self._buffer = bytearray()
        self._exhausted = False

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def read(self, size: int = -1) -> bytes:
        while not self._exhausted and (size is None or size < 0 or len(self._buffer) < size):
            try:
                self._buffer.extend(next(self._chunks))
            except StopIteration:
                self._exhausted = True
        if size is None or size < 0:
            size = len(self._buffer)
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data


class UrlIssuer:
    def __init__(
        self,
        storage: ObjectStorage,
        *,
        http_transport: httpx.BaseTransport | None = None,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        self.storage = storage
        self._transport = http_transport
        self.fetch_timeout = fetch_timeout

    def issue_upload_authorization(self) -> UploadAuthorization:
        """Allocate a key and sign a PUT for it."""
        key = new_key()
        url = self.storage.presign(key, Operation.WRITE)
        logger.info("Issued upload authorization for {key}", key=key)
        return UploadAuthorization(key=key, url=url)

    def issue_read_authorization(self, key: str) -> str:
        """Sign a GET for ``key``. The object is not required to exist."""
        return self.storage.presign(key, Operation.READ)

    async def ingest_from_url(self, source_url: str) -> str:
        """Fetch ``source_url`` and stream it into the store under a new key.

        Raises:
            FetchError: The source is unreachable, not http(s), or answered
                with a non-success status. Nothing is stored in that case.
            StoreWriteError: The upload to the store failed.
        """
        source = redact_url(source_url)
        if urlparse(source_url).scheme.lower() not in {"http", "https"}:
            raise FetchError(f"Unsupported source URL: {source}", {"url": source})
        key = new_key()
        await asyncio.to_thread(self._ingest, source_url, key)
        logger.info("Ingested {source} as {key}", source=source, key=key)
        return key

    def _ingest(self, source_url: str, key: str) -> None:
        source = redact_url(source_url)
        with httpx.Client(
            transport=self._transport,
            follow_redirects=True,
            timeout=self.fetch_timeout,
        ) as client:
            try:
                with client.stream("GET", source_url) as resp:
                    if not resp.is_success:
                        raise FetchError(
                            f"Fetching {source} returned HTTP {resp.status_code}",
                            {"url": source, "status": str(resp.status_code)},
                        )
                    content_type = resp.headers.get("content-type")
                    self.storage.put_stream(key, _ChunkReader(resp.iter_bytes()), content_type=content_type)
            except httpx.HTTPError as exc:
                raise FetchError(f"Fetching {source} failed: {exc}", {"url": source}) from exc


__all__ = ["UploadAuthorization", "UrlIssuer"]
