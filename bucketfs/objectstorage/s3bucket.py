"""
Interact with S3-compatible object storage (e.g., AWS S3, MinIO, SeaweedFS, Cloudflare R2).

S3Bucket wraps a shared minio client for a single bucket. It is the only place
that talks to the object store: the filesystem layers above only see ObjectInfo
records, bytes, and StoreWriteFailure / StoreUnavailable exceptions.
"""

import itertools
import logging
from datetime import timedelta
from io import BytesIO

from minio import Minio
from minio.commonconfig import CopySource
from minio.datatypes import Object
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError

from bucketfs.config import get_settings
from bucketfs.connections import StoreUnavailable, s3
from bucketfs.models import ObjectInfo

#: Every object written through bucketfs is publicly readable, delivery is controlled by the URL policy
PUBLIC_READ = {"x-amz-acl": "public-read"}

#: Maximum number of keys per listing page
PAGE_SIZE = 1000

NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "ResourceNotFound"}


class StoreWriteFailure(Exception):
    """A put, delete or copy on the bucket did not succeed"""


class S3Bucket:
    def __init__(self, bucket: str | None = None, client: Minio | None = None):
        self.bucket = bucket or get_settings().bucket
        self._client = client

    @property
    def client(self) -> Minio:
        return self._client if self._client is not None else s3()

    def validate(self) -> None:
        """
        Check that the store is reachable, the credentials are valid, and the bucket exists.
        """
        try:
            exists = self.client.bucket_exists(self.bucket)
        except (MinioException, HTTPError) as e:
            raise StoreUnavailable(f"Cannot connect to bucket {self.bucket!r}: {e}") from e
        if not exists:
            raise StoreUnavailable(f"Bucket {self.bucket!r} does not exist")

    def get(self, key: str, byte_range: tuple[int, int] | None = None) -> bytes:
        """
        Get the body of an object, or the inclusive byte range (first, last) of it.
        """
        if byte_range is None:
            res = self.client.get_object(self.bucket, key)
        else:
            first, last = byte_range
            res = self.client.get_object(self.bucket, key, offset=first, length=last - first + 1)
        try:
            return res.read()
        finally:
            res.close()
            res.release_conn()

    def put(self, key: str, body: bytes, content_type: str, acl: dict[str, str] = PUBLIC_READ) -> None:
        try:
            self.client.put_object(
                self.bucket, key, BytesIO(body), len(body), content_type=content_type, metadata=dict(acl)
            )
        except (MinioException, HTTPError) as e:
            raise StoreWriteFailure(f"Cannot upload {key!r}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.remove_object(self.bucket, key)
        except (MinioException, HTTPError) as e:
            raise StoreWriteFailure(f"Cannot delete {key!r}: {e}") from e

    def copy(self, src_key: str, dst_key: str, acl: dict[str, str] = PUBLIC_READ) -> None:
        try:
            self.client.copy_object(self.bucket, dst_key, CopySource(self.bucket, src_key), metadata=dict(acl))
        except (MinioException, HTTPError) as e:
            raise StoreWriteFailure(f"Cannot copy {src_key!r} to {dst_key!r}: {e}") from e

    def head(self, key: str) -> ObjectInfo | None:
        try:
            obj = self.client.stat_object(self.bucket, key)
        except S3Error as e:
            if e.code in NOT_FOUND_CODES:
                return None
            raise
        return _object_info(obj)

    def list(self, marker: str | None = None, page_size: int = PAGE_SIZE) -> tuple[list[ObjectInfo], str | None]:
        """
        List one page of the bucket, starting after the marker key.
        Returns the entries and the marker for the next page, or None if this was the last page.
        """
        objects = self.client.list_objects(self.bucket, recursive=True, start_after=marker)
        entries = [_object_info(obj) for obj in itertools.islice(objects, page_size)]
        logging.debug(f"Listed {len(entries)} objects in {self.bucket!r} after {marker!r}")
        if len(entries) < page_size:
            return entries, None
        return entries, entries[-1].key

    def sign_url(
        self,
        key: str,
        expires: timedelta,
        torrent: bool = False,
        response_headers: dict[str, str] | None = None,
    ) -> str:
        return self.client.get_presigned_url(
            "GET",
            self.bucket,
            key,
            expires=expires,
            response_headers=response_headers or None,
            extra_query_params={"torrent": ""} if torrent else None,
        )


def _object_info(obj: Object) -> ObjectInfo:
    return ObjectInfo(
        key=obj.object_name or "",
        size=obj.size or 0,
        last_modified=obj.last_modified,
        owner=obj.owner_name or obj.owner_id,
        etag=obj.etag.strip('"') if obj.etag else None,
    )
