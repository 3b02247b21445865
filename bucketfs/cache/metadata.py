"""
The metadata cache: the filesystem's view of which paths exist.

The bucket has no directories, so the cache is the only place where they exist.
Every write through the cache synthesizes the missing ancestor directories of the
written path, so for any cached path all of its parents are cached as well.
"""

import logging
from typing import Iterable

from bucketfs.cache.store import CacheStore, Kind, Record
from bucketfs.models import DirectoryEntry, FileEntry, ObjectInfo
from bucketfs.objectstorage.s3bucket import S3Bucket
from bucketfs.vfs.paths import SEPARATOR, children_prefix, dirname, is_root, normalize, split_uri, to_uri


def record_from_object(scheme: str, info: ObjectInfo) -> FileEntry:
    return FileEntry(
        uri=to_uri(scheme, info.key),
        filesize=info.size,
        timestamp=info.timestamp,
        owner=info.owner or "",
    )


class MetadataCache:
    def __init__(self, store: CacheStore, bucket: S3Bucket | None = None, bypass: bool = False):
        self.store = store
        self.bucket = bucket
        self.bypass = bypass and bucket is not None

    def read(self, uri: str) -> Record | None:
        """
        Get the record for this uri, or None if it does not exist.
        The root always exists as an (unstored) directory.
        """
        uri = normalize(uri)
        if is_root(uri):
            return DirectoryEntry(uri=uri)
        record = self.store.get(uri)
        if not self.bypass or (record is not None and record.is_dir):
            return record
        scheme, key = split_uri(uri)
        info = self.bucket.head(key)  # type: ignore[union-attr]
        return None if info is None else record_from_object(scheme, info)

    def write(self, record: Record) -> None:
        """
        Insert or replace the record, and create any missing parent directories
        """
        record = record.model_copy(update={"uri": normalize(record.uri)})
        self.store.upsert(record)
        parent = dirname(record.uri)
        if is_root(parent):
            return
        existing = self.store.get(parent)
        if existing is None or not existing.is_dir:
            logging.debug(f"Creating missing parent directory {parent}")
            self.write(DirectoryEntry(uri=parent))

    def delete(self, uris: str | Iterable[str]) -> int:
        """
        Delete the records for the uri(s). Parent directories are left alone, even if they become empty.
        """
        if isinstance(uris, str):
            uris = [uris]
        return self.store.delete(normalize(uri) for uri in uris)

    def children(self, uri: str) -> list[Record]:
        """
        The records directly inside the directory at this uri
        """
        prefix = children_prefix(uri)
        return [r for r in self.store.scan(prefix=prefix) if SEPARATOR not in r.uri[len(prefix):]]

    def has_descendants(self, uri: str) -> bool:
        return any(True for _ in self.store.scan(prefix=children_prefix(uri)))

    def scan(self, kind: Kind | None = None) -> Iterable[Record]:
        return self.store.scan(kind=kind)
