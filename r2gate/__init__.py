"""r2gate - signed URLs and an HTTP gateway for S3-compatible object stores."""

from .client import R2
from .exceptions import (
    CallbackError,
    ConfigurationError,
    FetchError,
    ObjectNotFoundError,
    R2GateError,
    StorageError,
    StoreDeleteError,
    StoreReadError,
    StoreWriteError,
)
from .gateway import CorsPolicy, ObjectGateway, Route, build_routes, register_routes
from .keys import new_key
from .settings import StoreContext
from .signing import UploadAuthorization, UrlIssuer

__all__ = [
    "R2",
    "CallbackError",
    "ConfigurationError",
    "CorsPolicy",
    "FetchError",
    "ObjectGateway",
    "ObjectNotFoundError",
    "R2GateError",
    "Route",
    "StorageError",
    "StoreContext",
    "StoreDeleteError",
    "StoreReadError",
    "StoreWriteError",
    "UploadAuthorization",
    "UrlIssuer",
    "build_routes",
    "new_key",
    "register_routes",
]
