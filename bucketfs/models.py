import stat
import time
from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter

#: Owner of directory records, which only exist in the cache
DIRECTORY_OWNER = "bucketfs"

#: Permissions are always fully open
OPEN_PERMISSIONS = 0o777

FILE_MODE = stat.S_IFREG | OPEN_PERMISSIONS
DIRECTORY_MODE = stat.S_IFDIR | OPEN_PERMISSIONS


class FileEntry(BaseModel):
    """A regular file, mirrored from an object in the bucket"""

    kind: Literal["file"] = "file"
    uri: str
    filesize: int = 0
    timestamp: int = 0
    mode: int = FILE_MODE
    owner: str = ""

    @property
    def is_dir(self) -> bool:
        return False


class DirectoryEntry(BaseModel):
    """A directory. Directories are cache-only facts and are never written to the bucket"""

    kind: Literal["dir"] = "dir"
    uri: str
    filesize: Literal[0] = 0
    timestamp: int = Field(default_factory=lambda: int(time.time()))
    mode: int = DIRECTORY_MODE
    owner: str = DIRECTORY_OWNER

    @property
    def is_dir(self) -> bool:
        return True


FileRecord = Annotated[FileEntry | DirectoryEntry, Field(discriminator="kind")]

RECORD_ADAPTER: TypeAdapter[FileEntry | DirectoryEntry] = TypeAdapter(FileRecord)


def parse_record(doc: dict) -> FileEntry | DirectoryEntry:
    return RECORD_ADAPTER.validate_python(doc)


class ObjectInfo(BaseModel):
    """Metadata of an object in the bucket, as returned by HEAD or LIST"""

    key: str
    size: int = 0
    last_modified: datetime | None = None
    owner: str | None = None
    etag: str | None = None

    @property
    def is_placeholder(self) -> bool:
        """Keys ending in a slash are folder placeholders created by other S3 tools"""
        return self.key.endswith("/")

    @property
    def timestamp(self) -> int:
        return int(self.last_modified.timestamp()) if self.last_modified else int(time.time())


class UrlSettings(BaseModel):
    """Delivery parameters for a single external URL, see bucketfs.vfs.urls"""

    torrent: bool = False
    presigned: bool = False
    timeout: int = 60
    forced_saveas: bool = False
    response_headers: dict[str, str] = {}
    query: dict[str, str] = {}
