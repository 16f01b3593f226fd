"""Tests for the S3 storage service."""

import io
import threading

import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody

from studyhub.errors import FetchError, StorageError, UploadError
from studyhub.services.storage import StorageService, document_path


class FakeS3Client:
    """Records each call and the thread it ran on."""

    def __init__(self, fail: bool = False):
        self.objects: dict[str, bytes] = {}
        self.calls: list[tuple[str, dict]] = []
        self.threads: set[int] = set()
        self.fail = fail

    def _record(self, name, kwargs):
        self.calls.append((name, kwargs))
        self.threads.add(threading.get_ident())
        if self.fail:
            raise ClientError({"Error": {"Code": "InternalError", "Message": "boom"}}, name)

    def put_object(self, **kwargs):
        self._record("PutObject", kwargs)
        self.objects[kwargs["Key"]] = kwargs["Body"]

    def get_object(self, **kwargs):
        self._record("GetObject", kwargs)
        data = self.objects[kwargs["Key"]]
        return {"Body": StreamingBody(io.BytesIO(data), len(data))}

    def delete_object(self, **kwargs):
        self._record("DeleteObject", kwargs)
        self.objects.pop(kwargs["Key"], None)


@pytest.fixture
def s3():
    return FakeS3Client()


@pytest.fixture
def service(s3) -> StorageService:
    service = StorageService()
    service.s3_client = s3
    service.bucket = "documents"
    return service


def test_document_path():
    assert document_path("u1", "f1", "notes.txt") == "u1/f1/notes.txt"


async def test_upload_download_remove(service, s3):
    await service.upload("u/f/notes.txt", b"hello", "text/plain")
    assert await service.download("u/f/notes.txt") == b"hello"
    await service.remove("u/f/notes.txt")

    assert s3.objects == {}
    name, kwargs = s3.calls[0]
    assert name == "PutObject"
    assert kwargs["Bucket"] == "documents"
    assert kwargs["ContentType"] == "text/plain"


async def test_calls_run_off_the_event_loop_thread(service, s3):
    await service.upload("u/f/notes.txt", b"hello")
    await service.download("u/f/notes.txt")
    await service.remove("u/f/notes.txt")

    assert len(s3.calls) == 3
    assert threading.get_ident() not in s3.threads


async def test_upload_without_content_type_omits_header(service, s3):
    await service.upload("u/f/blob", b"\x00")
    assert "ContentType" not in s3.calls[0][1]


@pytest.mark.parametrize(
    "operation, error",
    [
        (lambda s: s.upload("u/f/a.txt", b"a"), UploadError),
        (lambda s: s.download("u/f/a.txt"), FetchError),
        (lambda s: s.remove("u/f/a.txt"), StorageError),
    ],
)
async def test_client_errors_map_to_domain_errors(service, s3, operation, error):
    s3.fail = True

    with pytest.raises(error) as exc_info:
        await operation(service)

    assert exc_info.value.context == {"path": "u/f/a.txt"}
