import io
from urllib.parse import parse_qs, urlsplit

import pytest

from r2gate.exceptions import (
    ConfigurationError,
    ObjectNotFoundError,
    StoreDeleteError,
    StoreReadError,
    StoreWriteError,
)
from r2gate.storage import Operation, S3Storage
from tests.fakes import BrokenS3


@pytest.fixture
def storage(store_context, fake_s3) -> S3Storage:
    return S3Storage(store_context, client=fake_s3)


def test_put_and_get_bytes(storage, fake_s3):
    uri = storage.put_bytes("k1", b"\xde\xad\xbe\xef", content_type="image/png")

    assert uri == "s3://uploads/k1"
    obj = storage.get_bytes("k1")
    assert obj.body == b"\xde\xad\xbe\xef"
    assert obj.content_type == "image/png"


def test_put_stream_reads_whole_stream(storage):
    storage.put_stream("k2", io.BytesIO(b"x" * 5000))

    assert storage.get_bytes("k2").body == b"x" * 5000


def test_get_missing_raises_not_found(storage):
    with pytest.raises(ObjectNotFoundError) as excinfo:
        storage.get_bytes("never-written")
    assert excinfo.value.details == {"bucket": "uploads", "key": "never-written"}


def test_get_without_body_is_not_found(store_context):
    class NoBody:
        def get_object(self, **_):
            return {"ContentType": "text/plain"}

    with pytest.raises(ObjectNotFoundError):
        S3Storage(store_context, client=NoBody()).get_bytes("k")


def test_delete_is_idempotent(storage, fake_s3):
    storage.put_bytes("k3", b"data")

    storage.delete("k3")
    storage.delete("k3")

    assert "k3" not in fake_s3.objects
    with pytest.raises(ObjectNotFoundError):
        storage.get_bytes("k3")


def test_delete_ignores_backend_not_found(store_context):
    storage = S3Storage(store_context, client=BrokenS3(code="NoSuchKey"))

    storage.delete("gone")


@pytest.mark.parametrize("code", ["InternalError", "AccessDenied", None])
def test_backend_failures_are_translated(store_context, code):
    storage = S3Storage(store_context, client=BrokenS3(code=code))

    with pytest.raises(StoreWriteError):
        storage.put_bytes("k", b"data")
    with pytest.raises(StoreReadError):
        storage.get_bytes("k")
    with pytest.raises(StoreDeleteError):
        storage.delete("k")


def test_stream_failure_is_write_error(store_context):
    storage = S3Storage(store_context, client=BrokenS3())

    with pytest.raises(StoreWriteError) as excinfo:
        storage.put_stream("k", io.BytesIO(b"data"))
    assert excinfo.value.__cause__ is not None


def test_presign_uses_context_expiry_and_path_style(store_context):
    storage = S3Storage(store_context)

    url = storage.presign("some-key", Operation.READ)

    parts = urlsplit(url)
    query = parse_qs(parts.query)
    assert f"{parts.scheme}://{parts.netloc}" == store_context.endpoint
    assert parts.path == "/uploads/some-key"
    assert query["X-Amz-Expires"] == ["900"]
    assert query["X-Amz-Algorithm"] == ["AWS4-HMAC-SHA256"]
    assert query["X-Amz-Credential"][0].startswith("AKIDEXAMPLE/")
    assert store_context.secret_access_key not in url


def test_presign_custom_expiry(store_context):
    url = S3Storage(store_context).presign("k", Operation.WRITE, expires=60)

    assert parse_qs(urlsplit(url).query)["X-Amz-Expires"] == ["60"]


@pytest.mark.parametrize("expires", [0, -5, 7 * 24 * 3600 + 1])
def test_presign_rejects_out_of_range_expiry(store_context, expires):
    with pytest.raises(ConfigurationError):
        S3Storage(store_context).presign("k", Operation.READ, expires=expires)
