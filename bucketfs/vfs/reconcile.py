"""
Rebuild the metadata cache from the bucket listing

The cache is only updated for changes made through bucketfs. When the bucket is changed by
other tools, refresh the cache with CacheReconciler.refresh(), which:

1. checks that the bucket is reachable (nothing is changed if it is not)
2. removes all file records from the cache. Directory records are kept, because an empty
   directory has nothing in the bucket it could be restored from.
3. lists the whole bucket page by page. Keys ending in a slash are folder placeholders
   (created by other S3 tools) and become directories, all other keys become files.
4. inserts the files and upserts the directories of each page. If a page cannot be inserted
   because some uri is already cached, the page is inserted record by record and the
   conflicting records are skipped with a warning.
5. finally creates the missing parent directories of every cached record.

If listing the bucket fails halfway, ReconcileInterrupted carries the marker of the last
processed page and refresh(start_after=marker) continues from there.
"""

import logging
from typing import NamedTuple

from minio.error import MinioException
from urllib3.exceptions import HTTPError

from bucketfs.cache.metadata import MetadataCache, record_from_object
from bucketfs.cache.store import CacheConflict, Record
from bucketfs.models import DirectoryEntry, ObjectInfo
from bucketfs.objectstorage.s3bucket import PAGE_SIZE, S3Bucket
from bucketfs.vfs.paths import ancestors, to_uri


class ReconcileResult(NamedTuple):
    files: int
    directories: int
    conflicts: int
    pages: int
    marker: str | None


class ReconcileInterrupted(Exception):
    def __init__(self, marker: str | None, reason: Exception):
        super().__init__(f"Refreshing the cache was interrupted after marker {marker!r}: {reason}")
        self.marker = marker


class CacheReconciler:
    def __init__(self, bucket: S3Bucket, cache: MetadataCache, scheme: str = "s3", page_size: int = PAGE_SIZE):
        self.bucket = bucket
        self.cache = cache
        self.scheme = scheme
        self.page_size = page_size

    def refresh(self, start_after: str | None = None) -> ReconcileResult:
        """
        Rebuild the cache from the bucket. Give start_after to resume an interrupted refresh.
        Raises StoreUnavailable (before touching the cache) if the bucket cannot be reached.
        """
        self.bucket.validate()

        if start_after is None:
            removed = self.cache.store.delete_files()
            logging.info(f"Removed {removed} file records from the cache")
        else:
            logging.info(f"Resuming cache refresh after {start_after!r}")

        files = directories = conflicts = pages = 0
        marker = start_after
        while True:
            try:
                entries, next_marker = self.bucket.list(marker, page_size=self.page_size)
            except (MinioException, HTTPError) as e:
                raise ReconcileInterrupted(marker, e) from e

            file_records, dir_records = self._classify(entries)
            conflicts += self._insert_files(file_records)
            if dir_records:
                self.cache.store.upsert_many(dir_records)
            files += len(file_records)
            directories += len(dir_records)
            pages += 1
            if entries:
                marker = entries[-1].key
            logging.debug(f"Processed page {pages} of {self.bucket.bucket!r}, marker {marker!r}")
            if next_marker is None:
                break

        directories += self.restore_closure()
        logging.info(
            f"Refreshed cache from {self.bucket.bucket!r}: {files} files, {directories} directories, "
            f"{conflicts} conflicts"
        )
        return ReconcileResult(files=files, directories=directories, conflicts=conflicts, pages=pages, marker=marker)

    def restore_closure(self) -> int:
        """
        Make sure that every parent directory of every cached record exists. Returns the number of created directories.
        """
        present = {r.uri for r in self.cache.scan(kind="dir")}
        missing: set[str] = set()
        for record in self.cache.scan():
            for parent in ancestors(record.uri):
                if parent in present:
                    break
                missing.add(parent)
        if missing:
            self.cache.store.upsert_many([DirectoryEntry(uri=uri) for uri in sorted(missing)])
        return len(missing)

    def _classify(self, entries: list[ObjectInfo]) -> tuple[list[Record], list[Record]]:
        file_records: list[Record] = []
        dir_records: list[Record] = []
        for info in entries:
            if info.is_placeholder:
                dir_records.append(DirectoryEntry(uri=to_uri(self.scheme, info.key), timestamp=info.timestamp))
            else:
                file_records.append(record_from_object(self.scheme, info))
        return file_records, dir_records

    def _insert_files(self, records: list[Record]) -> int:
        """
        Insert a page of file records, one by one if the page has conflicts. Returns the number of conflicts.
        """
        if not records:
            return 0
        try:
            self.cache.store.create_many(records)
            return 0
        except CacheConflict as e:
            logging.info(f"Page contains {len(e.uris)} existing uris, inserting records one by one")

        conflicts = 0
        for record in records:
            try:
                self.cache.store.create(record)
            except CacheConflict:
                logging.warning(f"Cannot add {record.uri} to the cache: a record with this uri already exists")
                conflicts += 1
        return conflicts
