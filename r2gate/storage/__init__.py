from .base import ObjectStorage, Operation, StoredObject
from .s3 import S3Storage, build_client

__all__ = ["ObjectStorage", "Operation", "S3Storage", "StoredObject", "build_client"]
