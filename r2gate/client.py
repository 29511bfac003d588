"""Host-application facade over one bucket.

Example::

    r2 = R2()  # credentials from R2_* environment variables
    auth = r2.issue_upload_authorization()
    r2.register_routes(app, allowed_origin="https://mywebsite.com")
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from typing import Any

import httpx
from loguru import logger

from r2gate.exceptions import ConfigurationError
from r2gate.gateway import CorsPolicy, ObjectGateway, Route, UploadCallback, register_routes
from r2gate.settings import DEFAULT_PATH_PREFIX, StoreContext
from r2gate.signing import DEFAULT_FETCH_TIMEOUT, UploadAuthorization, UrlIssuer
from r2gate.storage import S3Storage


class R2:
    def __init__(
        self,
        *,
        bucket: str | None = None,
        endpoint: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        region: str | None = None,
        url_expiry_seconds: int | None = None,
        context: StoreContext | None = None,
        client: Any | None = None,
        http_transport: httpx.BaseTransport | None = None,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        self.context = context or StoreContext.resolve(
            bucket=bucket,
            endpoint=endpoint,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            region=region,
            url_expiry_seconds=url_expiry_seconds,
        )
        self.storage = S3Storage(self.context, client=client)
        self.issuer = UrlIssuer(self.storage, http_transport=http_transport, fetch_timeout=fetch_timeout)

    @property
    def bucket(self) -> str:
        return self.context.bucket

    @property
    def endpoint(self) -> str:
        return self.context.endpoint

    def issue_upload_authorization(self) -> UploadAuthorization:
        return self.issuer.issue_upload_authorization()

    def issue_read_authorization(self, key: str) -> str:
        return self.issuer.issue_read_authorization(key)

    async def store_from_url(self, url: str) -> str:
        return await self.issuer.ingest_from_url(url)

    async def delete_by_key(self, key: str) -> None:
        await asyncio.to_thread(self.storage.delete, key)
        logger.info("Deleted object {key} from {bucket}", key=key, bucket=self.bucket)

    def gateway(self, *, allowed_origin: str | None = None, on_upload: UploadCallback | None = None) -> ObjectGateway:
        origin = allowed_origin or os.getenv("CLIENT_ORIGIN")
        if not origin:
            raise ConfigurationError(
                "No allowed origin configured; pass allowed_origin or set CLIENT_ORIGIN",
                {"setting": "CLIENT_ORIGIN"},
            )
        return ObjectGateway(self.storage, CorsPolicy(allowed_origin=origin), on_upload=on_upload)

    def register_routes(
        self,
        router: Any,
        *,
        path_prefix: str = DEFAULT_PATH_PREFIX,
        on_upload: UploadCallback | None = None,
        allowed_origin: str | None = None,
    ) -> list[Route]:
        gateway = self.gateway(allowed_origin=allowed_origin, on_upload=on_upload)
        return register_routes(router, gateway, path_prefix)

    def api(self) -> dict[str, Callable[..., Any]]:
        """Bound host-facing operations, for re-export by the application."""
        return {
            "issue_upload_authorization": self.issue_upload_authorization,
            "issue_read_authorization": self.issue_read_authorization,
            "store_from_url": self.store_from_url,
            "delete_by_key": self.delete_by_key,
        }


__all__ = ["R2"]
