"""Public HTTP endpoints proxying bytes between clients and the store.

``GET {prefix}/get/{key}`` returns an object, ``POST {prefix}/send`` stores
the request body under a fresh key and ``OPTIONS {prefix}/send`` answers the
browser pre-flight for it. The read endpoint carries no CORS headers.

Uploads are anonymous, so reads are always served as
``application/octet-stream`` with an attachment disposition; a stored
``text/html`` body never renders on the gateway's origin.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from fastapi import Request
from fastapi.responses import PlainTextResponse, Response
from loguru import logger

from r2gate.exceptions import CallbackError, ConfigurationError, ObjectNotFoundError
from r2gate.keys import is_key, new_key
from r2gate.settings import DEFAULT_PATH_PREFIX, normalize_prefix
from r2gate.storage import ObjectStorage

UploadCallback = Callable[[str, str], Awaitable[None] | None]
Handler = Callable[[Request], Awaitable[Response]]

PREFLIGHT_HEADERS = ("Origin", "Access-Control-Request-Method", "Access-Control-Request-Headers")
NOT_FOUND_MESSAGE = "Object not found"
READ_MEDIA_TYPE = "application/octet-stream"
READ_HEADERS = {"Content-Disposition": "attachment", "Content-Security-Policy": "sandbox"}


@dataclass(frozen=True)
class CorsPolicy:
    allowed_origin: str
    allowed_methods: tuple[str, ...] = ("POST",)
    allowed_headers: tuple[str, ...] = ("Content-Type", "Digest")
    max_age: int = 86400

    def __post_init__(self) -> None:
        if not (self.allowed_origin or "").strip():
            raise ConfigurationError("An allowed CORS origin is required for the upload endpoint")

    def response_headers(self) -> dict[str, str]:
        return {"Access-Control-Allow-Origin": self.allowed_origin, "Vary": "origin"}

    def preflight_headers(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.allowed_origin,
            "Access-Control-Allow-Methods": ", ".join(self.allowed_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allowed_headers),
            "Access-Control-Max-Age": str(self.max_age),
        }

    @staticmethod
    def is_preflight(headers: Mapping[str, str]) -> bool:
        return all(headers.get(name) is not None for name in PREFLIGHT_HEADERS)


@dataclass(frozen=True)
class Route:
    method: str
    path: str
    handler: Handler


class ObjectGateway:
    def __init__(
        self,
        storage: ObjectStorage,
        cors: CorsPolicy,
        on_upload: UploadCallback | None = None,
    ) -> None:
        self.storage = storage
        self.cors = cors
        self.on_upload = on_upload

    async def read_object(self, request: Request) -> Response:
        key = request.url.path.split("/")[-1]
        if not key:
            return PlainTextResponse(NOT_FOUND_MESSAGE, status_code=404)
        try:
            obj = await asyncio.to_thread(self.storage.get_bytes, key)
        except ObjectNotFoundError:
            logger.info("Read of missing object {key} (allocated shape: {shaped})", key=key, shaped=is_key(key))
            return PlainTextResponse(NOT_FOUND_MESSAGE, status_code=404)
        return Response(content=obj.body, media_type=READ_MEDIA_TYPE, headers=READ_HEADERS)

    async def send_object(self, request: Request) -> Response:
        body = await request.body()
        key = new_key()
        content_type = request.headers.get("content-type")
        await asyncio.to_thread(self.storage.put_bytes, key, body, content_type)
        logger.info("Received {size} bytes as {key}", size=len(body), key=key)

        if self.on_upload is not None:
            await self._notify(key, str(request.url))

        return Response(status_code=200, headers=self.cors.response_headers())

    async def preflight(self, request: Request) -> Response:
        if self.cors.is_preflight(request.headers):
            return Response(status_code=200, headers=self.cors.preflight_headers())
        logger.debug("Incomplete pre-flight request for {path}", path=request.url.path)
        return Response(status_code=200)

    async def _notify(self, key: str, request_url: str) -> None:
        callback = self.on_upload
        try:
            if inspect.iscoroutinefunction(callback):
                await callback(key, request_url)
            else:
                result: Any = await asyncio.to_thread(callback, key, request_url)
                if inspect.isawaitable(result):
                    await result
        except Exception as exc:
            logger.error("Upload callback failed for {key}: {error}", key=key, error=exc)
            raise CallbackError(f"Upload callback failed for {key}: {exc}", {"key": key}) from exc


def build_routes(gateway: ObjectGateway, path_prefix: str = DEFAULT_PATH_PREFIX) -> list[Route]:
    """Return the gateway's ``(method, path, handler)`` triples under ``path_prefix``."""
    prefix = normalize_prefix(path_prefix)
    return [
        Route("GET", f"{prefix}/get/{{key:path}}", gateway.read_object),
        Route("POST", f"{prefix}/send", gateway.send_object),
        Route("OPTIONS", f"{prefix}/send", gateway.preflight),
    ]


def register_routes(router: Any, gateway: ObjectGateway, path_prefix: str = DEFAULT_PATH_PREFIX) -> list[Route]:
    """Add the gateway routes to a FastAPI app or ``APIRouter``."""
    routes = build_routes(gateway, path_prefix)
    for route in routes:
        router.add_api_route(
            route.path,
            route.handler,
            methods=[route.method],
            include_in_schema=route.method != "OPTIONS",
            tags=["objects"],
        )
    logger.info("Object gateway mounted at {prefix}", prefix=normalize_prefix(path_prefix) or "/")
    return routes


__all__ = [
    "CorsPolicy",
    "ObjectGateway",
    "Route",
    "UploadCallback",
    "build_routes",
    "register_routes",
]
