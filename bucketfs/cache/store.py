"""
Storage backends for the metadata cache.

A CacheStore keeps one record per uri and supports exact lookups, upserts,
deletes and prefix scans. It knows nothing about directories: keeping the
directory structure consistent is the job of MetadataCache.
"""

import threading
from abc import ABC, abstractmethod
from typing import Iterable, Literal

from bucketfs.models import DirectoryEntry, FileEntry

Record = FileEntry | DirectoryEntry
Kind = Literal["file", "dir"]


class CacheConflict(Exception):
    """One or more records could not be created because their uri is already taken"""

    def __init__(self, uris: list[str]):
        super().__init__(f"Records already exist: {', '.join(uris)}")
        self.uris = uris


def find_duplicates(uris: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    duplicates = []
    for uri in uris:
        if uri in seen:
            duplicates.append(uri)
        seen.add(uri)
    return duplicates


class CacheStore(ABC):
    @abstractmethod
    def get(self, uri: str) -> Record | None: ...

    @abstractmethod
    def upsert(self, record: Record) -> None: ...

    @abstractmethod
    def create(self, record: Record) -> None:
        """Insert a new record, raise CacheConflict if the uri already exists"""

    @abstractmethod
    def create_many(self, records: list[Record]) -> None:
        """Insert new records, raise CacheConflict if any of the uris already exists"""

    @abstractmethod
    def upsert_many(self, records: list[Record]) -> None: ...

    @abstractmethod
    def delete(self, uris: Iterable[str]) -> int:
        """Delete the records for these uris, returning the number of deleted records"""

    @abstractmethod
    def delete_files(self) -> int:
        """Delete every non-directory record, returning the number of deleted records"""

    @abstractmethod
    def scan(self, prefix: str | None = None, kind: Kind | None = None) -> Iterable[Record]:
        """Iterate over all records, optionally restricted to a uri prefix and/or a kind"""


class MemoryCacheStore(CacheStore):
    """
    Keep the cache in a dict. Records do not survive the process, so this is meant for
    embedding bucketfs in short-lived tools and for testing.
    """

    def __init__(self) -> None:
        self._records: dict[str, Record] = {}
        self._lock = threading.Lock()

    def get(self, uri: str) -> Record | None:
        return self._records.get(uri)

    def upsert(self, record: Record) -> None:
        with self._lock:
            self._records[record.uri] = record

    def create(self, record: Record) -> None:
        self.create_many([record])

    def create_many(self, records: list[Record]) -> None:
        with self._lock:
            uris = [r.uri for r in records]
            conflicts = [uri for uri in uris if uri in self._records]
            conflicts += find_duplicates(uris)
            if conflicts:
                raise CacheConflict(conflicts)
            for record in records:
                self._records[record.uri] = record

    def upsert_many(self, records: list[Record]) -> None:
        with self._lock:
            for record in records:
                self._records[record.uri] = record

    def delete(self, uris: Iterable[str]) -> int:
        with self._lock:
            return len([self._records.pop(uri) for uri in set(uris) if uri in self._records])

    def delete_files(self) -> int:
        with self._lock:
            files = [uri for uri, record in self._records.items() if not record.is_dir]
            for uri in files:
                del self._records[uri]
            return len(files)

    def scan(self, prefix: str | None = None, kind: Kind | None = None) -> Iterable[Record]:
        with self._lock:
            records = list(self._records.values())
        for record in records:
            if prefix is not None and not record.uri.startswith(prefix):
                continue
            if kind is not None and record.kind != kind:
                continue
            yield record
