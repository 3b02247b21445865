"""
Directories on top of a bucket without directories.

All directory state lives in the metadata cache: directories are created as cache
records, listed with prefix scans on the cache, and removed from the cache only.
The bucket itself is never touched here.
"""

import logging

from bucketfs.cache.metadata import MetadataCache
from bucketfs.models import DirectoryEntry
from bucketfs.vfs.paths import basename, dirname, is_root, normalize


class DirectoryEmulator:
    def __init__(self, cache: MetadataCache):
        self.cache = cache

    def is_directory(self, uri: str) -> bool:
        if is_root(uri):
            return True
        record = self.cache.read(uri)
        return record is not None and record.is_dir

    def mkdir(self, uri: str, recursive: bool = False) -> bool:
        """
        Create a directory. Creating an existing directory succeeds, creating a directory
        where a file exists fails.
        """
        uri = normalize(uri)
        existing = self.cache.read(uri)
        if existing is not None:
            return existing.is_dir
        self.cache.write(DirectoryEntry(uri=uri))
        parent = dirname(uri)
        if recursive and not is_root(parent):
            return self.mkdir(parent, recursive=True)
        return True

    def rmdir(self, uri: str) -> bool:
        """
        Remove an empty directory. The root cannot be removed.
        """
        if is_root(uri) or not self.is_directory(uri):
            return False
        if self.cache.has_descendants(uri):
            logging.info(f"Cannot remove {uri}: directory is not empty")
            return False
        self.cache.delete(uri)
        return True

    def list_directory(self, uri: str) -> list[str] | None:
        """
        The names of the entries directly inside this directory, or None if it is not a directory
        """
        if not self.is_directory(uri):
            return None
        return sorted(basename(r.uri) for r in self.cache.children(uri))
