"""
Stream handles: files in the bucket opened for reading or writing

A StreamHandle is created for every open file, much like a Python file object. Reads
fetch the missing byte ranges of the object with ranged GETs. Writes are buffered in
memory and uploaded as one object on flush/close, after which the metadata cache is
updated with the metadata of the new object.

Besides the stream operations, a handle offers the path operations of a filesystem
(stat, unlink, rename, mkdir, rmdir, directory listing, external URLs), which only need
a uri and not an open file.

A handle is not thread safe; use one handle per caller. The clients and the metadata
cache behind it are shared, see bucketfs.connections.
"""

import logging
import os

from bucketfs.cache.elastic_store import ElasticCacheStore
from bucketfs.cache.metadata import MetadataCache, record_from_object
from bucketfs.config import Settings, get_settings
from bucketfs.models import DIRECTORY_MODE
from bucketfs.objectstorage.contenttypes import guess_content_type
from bucketfs.objectstorage.s3bucket import PUBLIC_READ, S3Bucket, StoreWriteFailure
from bucketfs.vfs import paths
from bucketfs.vfs.buffer import ReadBuffer
from bucketfs.vfs.directories import DirectoryEmulator
from bucketfs.vfs.urls import URLResolver


class StreamHandle:
    settings: Settings
    bucket: S3Bucket
    cache: MetadataCache
    resolver: URLResolver
    directories: DirectoryEmulator

    def __init__(
        self,
        bucket: S3Bucket | None = None,
        cache: MetadataCache | None = None,
        resolver: URLResolver | None = None,
        settings: Settings | None = None,
    ):
        self._bucket = bucket
        self._cache = cache
        self._resolver = resolver
        self._settings = settings
        self._initialized = False

        self.uri: str | None = None
        self.mode: str | None = None
        self.position = 0
        self.object_size = 0
        self.read_buffer = ReadBuffer()
        self.write_buffer = bytearray()
        self.write_pending = False
        self.dirty = False
        self.failed = False

        self._dir_entries: list[str] | None = None
        self._dir_index = 0

    def _ensure_initialized(self) -> None:
        """
        Resolve the collaborators that were not passed to the constructor. Safe to call repeatedly.
        """
        if self._initialized:
            return
        self.settings = self._settings or get_settings()
        self.bucket = self._bucket or S3Bucket(self.settings.bucket)
        self.cache = self._cache or MetadataCache(
            ElasticCacheStore(self.settings.cache_index), self.bucket, self.settings.bypass_cache
        )
        self.resolver = self._resolver or URLResolver(self.bucket, self.cache, settings=self.settings)
        self.directories = DirectoryEmulator(self.cache)
        self._initialized = True

    # Stream operations

    def open(self, uri: str, mode: str = "rb") -> bool:
        """
        Open the file at uri. Opening for writing always succeeds, the object is only created on flush.
        Opening for reading fails if the file does not exist.
        """
        self._ensure_initialized()
        self.uri = paths.normalize(uri)
        self.mode = mode
        self.position = 0
        self.read_buffer.clear()
        self.write_buffer = bytearray()
        self.failed = False

        if not mode.startswith("r") or "+" in mode:
            self.write_pending = True
            self.dirty = True
            self.object_size = 0
            return True

        self.write_pending = False
        self.dirty = False
        record = self.cache.read(self.uri)
        if record is None:
            logging.debug(f"Cannot open {self.uri}: file not found")
            self.uri = None
            return False
        self.object_size = record.filesize
        return True

    def read(self, count: int) -> bytes:
        """
        Read up to count bytes from the current position. Returns b"" at the end of the file.
        """
        self._ensure_initialized()
        if self.uri is None or self.write_pending:
            return b""
        count = max(0, min(count, self.object_size - self.position))
        if count == 0:
            return b""
        start, end = self.position, self.position + count
        key = paths.to_key(self.uri)
        for gap_start, gap_end in self.read_buffer.missing(start, end):
            chunk = self.bucket.get(key, (gap_start, gap_end - 1))
            self.read_buffer.add(gap_start, chunk)
        data = self.read_buffer.get(start, end)
        self.position += len(data)
        return data

    def write(self, data: bytes) -> int:
        """
        Buffer data for upload; nothing reaches the bucket before flush() or close()
        """
        self._ensure_initialized()
        if self.failed:
            return 0
        self.write_buffer.extend(data)
        self.dirty = True
        self.position += len(data)
        return len(data)

    @property
    def size(self) -> int:
        return len(self.write_buffer) if self.write_pending else self.object_size

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> bool:
        self._ensure_initialized()
        if whence == os.SEEK_CUR:
            position = self.position + offset
        elif whence == os.SEEK_END:
            position = self.size + offset
        elif whence == os.SEEK_SET:
            position = offset
        else:
            return False
        if position < 0 or position > self.size:
            return False
        self.position = position
        return True

    def tell(self) -> int:
        self._ensure_initialized()
        return self.position

    def eof(self) -> bool:
        self._ensure_initialized()
        return self.uri is None or self.position >= self.size

    def flush(self) -> bool:
        """
        Upload the write buffer as the new object body and cache its metadata.
        Nothing is uploaded if the buffer did not change since the last flush.
        After a failed upload the handle stays failed until it is reopened.
        """
        self._ensure_initialized()
        if not self.write_pending:
            self.read_buffer.clear()
            self.write_buffer = bytearray()
            return True
        if self.uri is None or self.failed:
            return False
        if not self.dirty:
            return True

        key = paths.to_key(self.uri)
        self.dirty = False
        try:
            self.bucket.put(key, bytes(self.write_buffer), guess_content_type(key), PUBLIC_READ)
        except StoreWriteFailure as e:
            logging.error(f"Cannot write {self.uri}: {e}")
            self.write_buffer = bytearray()
            self.failed = True
            return False

        info = self.bucket.head(key)
        if info is None:
            logging.error(f"Cannot find {self.uri} in the bucket after writing it")
            self.failed = True
            return False
        self.cache.write(record_from_object(paths.split_uri(self.uri)[0], info))
        return True

    def close(self) -> bool:
        self._ensure_initialized()
        result = self.flush()
        self.uri = None
        self.write_pending = False
        self.dirty = False
        self.failed = False
        self.position = 0
        self.object_size = 0
        self.read_buffer.clear()
        self.write_buffer = bytearray()
        return result

    def lock(self, operation: int) -> bool:
        """Locking is not supported, no lock is ever acquired"""
        return False

    def __enter__(self) -> "StreamHandle":
        return self

    def __exit__(self, *exc) -> None:
        if self.uri is not None:
            self.close()

    # Path operations

    def stat(self, uri: str) -> os.stat_result | None:
        """
        Status of the file or directory at uri, or None if it does not exist
        """
        self._ensure_initialized()
        record = self.cache.read(uri)
        if record is None:
            return None
        if record.is_dir:
            mode, size = DIRECTORY_MODE, 0
        else:
            mode, size = record.mode, record.filesize
        t = record.timestamp
        # mode, ino, dev, nlink, uid, gid, size, atime, mtime, ctime
        return os.stat_result((mode, 0, 0, 1, 0, 0, size, t, t, t))

    def unlink(self, uri: str) -> bool:
        self._ensure_initialized()
        uri = paths.normalize(uri)
        if self.directories.is_directory(uri):
            logging.debug(f"Cannot unlink {uri}: is a directory")
            return False
        try:
            self.bucket.delete(paths.to_key(uri))
        except StoreWriteFailure as e:
            logging.error(f"Cannot delete {uri}: {e}")
            return False
        self.cache.delete(uri)
        return True

    def rename(self, src: str, dst: str) -> bool:
        """
        Copy src to dst in the bucket, move its cached metadata, then delete src
        """
        self._ensure_initialized()
        src, dst = paths.normalize(src), paths.normalize(dst)
        try:
            self.bucket.copy(paths.to_key(src), paths.to_key(dst), PUBLIC_READ)
        except StoreWriteFailure as e:
            logging.error(f"Cannot rename {src} to {dst}: {e}")
            return False

        record = self.cache.read(src)
        if record is None:
            info = self.bucket.head(paths.to_key(dst))
            record = None if info is None else record_from_object(paths.split_uri(dst)[0], info)
        if record is not None:
            self.cache.write(record.model_copy(update={"uri": dst}))
        return self.unlink(src)

    def mkdir(self, uri: str, recursive: bool = False) -> bool:
        self._ensure_initialized()
        return self.directories.mkdir(uri, recursive)

    def rmdir(self, uri: str) -> bool:
        self._ensure_initialized()
        return self.directories.rmdir(uri)

    def is_directory(self, uri: str) -> bool:
        self._ensure_initialized()
        return self.directories.is_directory(uri)

    def opendir(self, uri: str) -> bool:
        self._ensure_initialized()
        self._dir_entries = self.directories.list_directory(uri)
        self._dir_index = 0
        return self._dir_entries is not None

    def readdir(self) -> str | None:
        """The next entry of the open directory, or None after the last entry"""
        self._ensure_initialized()
        if self._dir_entries is None or self._dir_index >= len(self._dir_entries):
            return None
        entry = self._dir_entries[self._dir_index]
        self._dir_index += 1
        return entry

    def rewinddir(self) -> bool:
        self._ensure_initialized()
        self._dir_index = 0
        return self._dir_entries is not None

    def closedir(self) -> bool:
        self._ensure_initialized()
        self._dir_entries = None
        self._dir_index = 0
        return True

    def dirname(self, uri: str) -> str:
        self._ensure_initialized()
        return paths.dirname(uri)

    def external_url(self, uri: str) -> str:
        self._ensure_initialized()
        return self.resolver.resolve(uri)
