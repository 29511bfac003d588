from __future__ import annotations

from typing import Any, BinaryIO

import boto3
from boto3.exceptions import Boto3Error
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from r2gate.exceptions import (
    ConfigurationError,
    ObjectNotFoundError,
    StoreDeleteError,
    StoreReadError,
    StoreWriteError,
)
from r2gate.settings import MAX_URL_EXPIRY_SECONDS, StoreContext
from r2gate.storage.base import Operation, StoredObject

_MISSING_CODES = {"NoSuchKey", "NoSuchObject", "NotFound", "404"}


def build_client(context: StoreContext) -> Any:
    """Create a boto3 S3 client bound to ``context``.

    Each context gets its own session so several stores can live in one process.
    Retries are disabled; callers decide whether to retry a failed request.
    """
    session = boto3.session.Session()
    cfg = Config(
        signature_version="s3v4",
        region_name=context.region,
        s3={"addressing_style": "path"},
        retries={"total_max_attempts": 1, "mode": "standard"},
        request_checksum_calculation="when_required",
        response_checksum_validation="when_required",
    )
    return session.client(
        "s3",
        endpoint_url=context.endpoint,
        aws_access_key_id=context.access_key_id,
        aws_secret_access_key=context.secret_access_key,
        config=cfg,
    )


def _error_code(exc: ClientError) -> str:
    return str((exc.response or {}).get("Error", {}).get("Code", ""))


class S3Storage:
    def __init__(self, context: StoreContext, client: Any | None = None) -> None:
        self.context = context
        self.bucket = context.bucket
        self.client = client if client is not None else build_client(context)

    def _uri(self, key: str) -> str:
        return f"s3://{self.bucket}/{key}"

    def _details(self, key: str) -> dict[str, str]:
        return {"bucket": self.bucket, "key": key}

    def put_bytes(self, key: str, data: bytes, content_type: str | None = None) -> str:
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "Key": key, "Body": data}
        if content_type:
            kwargs["ContentType"] = content_type
        try:
            self.client.put_object(**kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise StoreWriteError(f"Failed to write object {key}: {exc}", self._details(key)) from exc
        logger.debug("Stored {size} bytes at {uri}", size=len(data), uri=self._uri(key))
        return self._uri(key)

    def put_stream(self, key: str, stream: BinaryIO, content_type: str | None = None) -> str:
        extra_args = {"ContentType": content_type} if content_type else None
        try:
            self.client.upload_fileobj(stream, self.bucket, key, ExtraArgs=extra_args)
        except (Boto3Error, BotoCoreError, ClientError) as exc:
            raise StoreWriteError(f"Failed to write object {key}: {exc}", self._details(key)) from exc
        logger.debug("Streamed object to {uri}", uri=self._uri(key))
        return self._uri(key)

    def get_bytes(self, key: str) -> StoredObject:
        try:
            resp = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                raise ObjectNotFoundError(f"Object {key} not found", self._details(key)) from exc
            raise StoreReadError(f"Failed to read object {key}: {exc}", self._details(key)) from exc
        except BotoCoreError as exc:
            raise StoreReadError(f"Failed to read object {key}: {exc}", self._details(key)) from exc

        body = resp.get("Body")
        if body is None:
            raise ObjectNotFoundError(f"Object {key} not found", self._details(key))
        try:
            data = body.read()
        except BotoCoreError as exc:
            raise StoreReadError(f"Failed to read object {key}: {exc}", self._details(key)) from exc
        finally:
            body.close()
        return StoredObject(key=key, body=data, content_type=resp.get("ContentType"))

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            # S3 deletes are idempotent; some compatible stores still report the miss
            if _error_code(exc) in _MISSING_CODES:
                logger.debug("Delete of missing object {uri} ignored", uri=self._uri(key))
                return
            raise StoreDeleteError(f"Failed to delete object {key}: {exc}", self._details(key)) from exc
        except BotoCoreError as exc:
            raise StoreDeleteError(f"Failed to delete object {key}: {exc}", self._details(key)) from exc
        logger.debug("Deleted {uri}", uri=self._uri(key))

    def presign(self, key: str, operation: Operation, expires: int | None = None) -> str:
        ttl = self.context.url_expiry_seconds if expires is None else int(expires)
        if not 0 < ttl <= MAX_URL_EXPIRY_SECONDS:
            raise ConfigurationError(
                f"Signed URL expiry must be between 1 and {MAX_URL_EXPIRY_SECONDS} seconds",
                {"expires": str(ttl)},
            )
        try:
            return self.client.generate_presigned_url(
                ClientMethod=operation.value,
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=ttl,
            )
        except (BotoCoreError, ClientError) as exc:
            raise ConfigurationError(f"Cannot sign {operation.name.lower()} URL: {exc}", self._details(key)) from exc


__all__ = ["S3Storage", "build_client"]
