from datetime import UTC, datetime, timedelta

import pytest

from bucketfs.cache.metadata import MetadataCache
from bucketfs.cache.store import MemoryCacheStore
from bucketfs.config import Settings
from bucketfs.connections import StoreUnavailable
from bucketfs.models import ObjectInfo
from bucketfs.objectstorage.s3bucket import StoreWriteFailure
from bucketfs.vfs.stream import StreamHandle
from bucketfs.vfs.urls import URLResolver

MODIFIED = datetime(2024, 1, 1, tzinfo=UTC)


class MemoryBucket:
    """
    A bucket in a dict, with the same methods as S3Bucket.
    Set fail_writes to make put/delete/copy fail, available to make validate fail.
    """

    def __init__(self, bucket: str = "unittest"):
        self.bucket = bucket
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.gets: list[tuple[str, tuple[int, int] | None]] = []
        self.signed: list[dict] = []
        self.fail_writes = False
        self.available = True

    def validate(self) -> None:
        if not self.available:
            raise StoreUnavailable(f"Bucket {self.bucket!r} does not exist")

    def get(self, key, byte_range=None) -> bytes:
        self.gets.append((key, byte_range))
        body = self.objects[key]
        if byte_range is None:
            return body
        return body[byte_range[0] : byte_range[1] + 1]

    def put(self, key, body, content_type, acl=None) -> None:
        if self.fail_writes:
            raise StoreWriteFailure(f"Cannot upload {key!r}")
        self.objects[key] = bytes(body)
        self.content_types[key] = content_type

    def delete(self, key) -> None:
        if self.fail_writes:
            raise StoreWriteFailure(f"Cannot delete {key!r}")
        self.objects.pop(key, None)

    def copy(self, src_key, dst_key, acl=None) -> None:
        if self.fail_writes or src_key not in self.objects:
            raise StoreWriteFailure(f"Cannot copy {src_key!r}")
        self.objects[dst_key] = self.objects[src_key]

    def head(self, key) -> ObjectInfo | None:
        if key not in self.objects:
            return None
        return ObjectInfo(key=key, size=len(self.objects[key]), last_modified=MODIFIED, owner="owner")

    def list(self, marker=None, page_size=1000):
        keys = sorted(k for k in self.objects if marker is None or k > marker)
        page = [ObjectInfo(key=k, size=len(self.objects[k]), last_modified=MODIFIED) for k in keys[:page_size]]
        return page, (page[-1].key if len(keys) > page_size else None)

    def sign_url(self, key, expires: timedelta, torrent=False, response_headers=None) -> str:
        self.signed.append(dict(key=key, expires=expires, torrent=torrent, response_headers=response_headers))
        url = f"https://signed.example.com/{key}?X-Amz-Expires={int(expires.total_seconds())}"
        if torrent:
            url += "&torrent"
        return url


@pytest.fixture()
def settings():
    return Settings(
        s3_host="localhost:9000",
        bucket="unittest",
        public_domain=None,
        torrent_paths=["videos/*"],
        presigned_paths=["60|secret/*", "private/*"],
        saveas_paths=["downloads/*"],
        presigned_timeout=30,
        local_base_url="http://localhost:5000",
    )


@pytest.fixture()
def bucket():
    return MemoryBucket()


@pytest.fixture()
def store():
    return MemoryCacheStore()


@pytest.fixture()
def cache(store):
    return MetadataCache(store)


@pytest.fixture()
def handle(bucket, cache, settings):
    return StreamHandle(bucket=bucket, cache=cache, settings=settings)  # type: ignore[arg-type]


@pytest.fixture()
def resolver(bucket, cache, settings):
    return URLResolver(bucket, cache, settings=settings)  # type: ignore[arg-type]


@pytest.fixture()
def write_file(handle):
    """Write a file through the handle and close it"""

    def write(uri: str, body: bytes) -> None:
        assert handle.open(uri, "wb")
        handle.write(body)
        assert handle.close()

    return write
