"""Storage abstraction over an S3-compatible object store."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Protocol


class Operation(str, Enum):
    """Operation a signed URL authorizes, named after the S3 client method."""

    READ = "get_object"
    WRITE = "put_object"


@dataclass(frozen=True)
class StoredObject:
    key: str
    body: bytes
    content_type: str | None = None


class ObjectStorage(Protocol):
    def put_bytes(self, key: str, data: bytes, content_type: str | None = None) -> str:  # returns uri
        ...

    def put_stream(self, key: str, stream: BinaryIO, content_type: str | None = None) -> str:  # returns uri
        ...

    def get_bytes(self, key: str) -> StoredObject:
        ...

    def delete(self, key: str) -> None:
        ...

    def presign(self, key: str, operation: Operation, expires: int | None = None) -> str:
        ...


__all__ = ["ObjectStorage", "Operation", "StoredObject"]
