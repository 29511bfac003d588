"""In-memory stand-ins for the object store used across the test suite."""

from __future__ import annotations

import hashlib
import hmac
import io
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import parse_qs, unquote, urlsplit

from botocore.exceptions import ClientError, EndpointConnectionError

from r2gate.settings import StoreContext
from r2gate.storage import build_client

CLIENT_ORIGIN = "https://app.example.com"


def _client_error(code: str, operation: str, status: int) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        operation,
    )


def signed_at(url: str) -> datetime:
    query = parse_qs(urlsplit(url).query)
    return datetime.strptime(query["X-Amz-Date"][0], "%Y%m%dT%H%M%SZ").replace(tzinfo=timezone.utc)


def verify_presigned(method: str, url: str, secret_key: str, now: datetime | None = None) -> bool:
    """Check a SigV4 query-signed S3 request the way the backend does."""
    now = now or datetime.now(timezone.utc)
    parts = urlsplit(url)
    pairs = [pair.partition("=") for pair in parts.query.split("&") if pair]
    raw = {name: value for name, _, value in pairs}
    signature = raw.get("X-Amz-Signature")
    if not signature:
        return False

    amz_date = unquote(raw["X-Amz-Date"])
    expires = int(unquote(raw["X-Amz-Expires"]))
    if now > signed_at(url) + timedelta(seconds=expires):
        return False

    scope = unquote(raw["X-Amz-Credential"]).split("/", 1)[1]
    date_stamp, region, service, _ = scope.split("/")
    signed_headers = unquote(raw["X-Amz-SignedHeaders"])
    headers = {"host": parts.netloc}
    if any(name not in headers for name in signed_headers.split(";")):
        return False

    canonical_query = "&".join(
        f"{name}={value}" for name, value in sorted((n, v) for n, _, v in pairs if n != "X-Amz-Signature")
    )
    canonical_headers = "".join(f"{name}:{headers[name]}\n" for name in signed_headers.split(";"))
    canonical_request = "\n".join(
        [method.upper(), parts.path, canonical_query, canonical_headers, signed_headers, "UNSIGNED-PAYLOAD"]
    )
    string_to_sign = "\n".join(
        [
            "AWS4-HMAC-SHA256",
            amz_date,
            scope,
            hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
        ]
    )

    key = ("AWS4" + secret_key).encode("utf-8")
    for part in (date_stamp, region, service, "aws4_request"):
        key = hmac.new(key, part.encode("utf-8"), hashlib.sha256).digest()
    expected = hmac.new(key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


class FakeS3:
    """The subset of the boto3 S3 client r2gate calls, backed by a dict.

    Pre-signing is delegated to a real boto3 client so the URLs are genuine;
    :meth:`handle_presigned` plays the backend receiving them.
    """

    def __init__(self, context: StoreContext) -> None:
        self.context = context
        self.objects: dict[str, tuple[bytes, str | None]] = {}
        self.calls: list[str] = []
        self._signer = build_client(context)

    def put_object(self, Bucket: str, Key: str, Body: Any, ContentType: str | None = None, **_: Any) -> dict:
        self.calls.append("put_object")
        data = Body if isinstance(Body, (bytes, bytearray)) else Body.read()
        self.objects[Key] = (bytes(data), ContentType)
        return {"ETag": f'"{hashlib.md5(data).hexdigest()}"'}

    def upload_fileobj(self, Fileobj: Any, Bucket: str, Key: str, ExtraArgs: dict | None = None, **_: Any) -> None:
        self.calls.append("upload_fileobj")
        buffer = bytearray()
        while True:
            chunk = Fileobj.read(1024)
            if not chunk:
                break
            buffer.extend(chunk)
        self.objects[Key] = (bytes(buffer), (ExtraArgs or {}).get("ContentType"))

    def get_object(self, Bucket: str, Key: str, **_: Any) -> dict:
        self.calls.append("get_object")
        if Key not in self.objects:
            raise _client_error("NoSuchKey", "GetObject", 404)
        data, content_type = self.objects[Key]
        return {"Body": io.BytesIO(data), "ContentType": content_type or "binary/octet-stream"}

    def delete_object(self, Bucket: str, Key: str, **_: Any) -> dict:
        self.calls.append("delete_object")
        self.objects.pop(Key, None)
        return {}

    def generate_presigned_url(self, ClientMethod: str, Params: dict, ExpiresIn: int = 3600, **_: Any) -> str:
        return self._signer.generate_presigned_url(ClientMethod=ClientMethod, Params=Params, ExpiresIn=ExpiresIn)

    def handle_presigned(self, method: str, url: str, body: bytes = b"", now: datetime | None = None) -> tuple[int, bytes]:
        if not verify_presigned(method, url, self.context.secret_access_key, now=now):
            return 403, b"SignatureDoesNotMatch"
        path = urlsplit(url).path
        prefix = f"/{self.context.bucket}/"
        if not path.startswith(prefix):
            return 404, b"NoSuchBucket"
        key = unquote(path[len(prefix):])
        if method.upper() == "PUT":
            self.objects[key] = (bytes(body), None)
            return 200, b""
        if method.upper() == "GET":
            if key not in self.objects:
                return 404, b"NoSuchKey"
            return 200, self.objects[key][0]
        return 405, b""


class BrokenS3:
    """A client whose every call fails like an unreachable or faulty backend."""

    def __init__(self, code: str | None = "InternalError") -> None:
        self.code = code

    def _fail(self, operation: str) -> None:
        if self.code is None:
            raise EndpointConnectionError(endpoint_url="https://account.r2.example.com")
        raise _client_error(self.code, operation, 500)

    def put_object(self, **_: Any) -> None:
        self._fail("PutObject")

    def upload_fileobj(self, *_: Any, **__: Any) -> None:
        self._fail("PutObject")

    def get_object(self, **_: Any) -> None:
        self._fail("GetObject")

    def delete_object(self, **_: Any) -> None:
        self._fail("DeleteObject")
