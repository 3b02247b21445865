"""
Content types for uploaded files, based on the longest matching filename suffix.
"""

import mimetypes

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Multi-part extensions that the standard table only knows as their last part
EXTRA_TYPES: dict[str, str] = {
    "tar.gz": "application/x-gtar",
    "tar.bz2": "application/x-gtar",
    "tar.xz": "application/x-gtar",
    "tgz": "application/x-gtar",
    "webp": "image/webp",
    "m4a": "audio/mp4",
    "mkv": "video/x-matroska",
}


def _load_table() -> dict[str, str]:
    table = {ext.lstrip(".").lower(): type for ext, type in mimetypes.types_map.items()}
    table.update(EXTRA_TYPES)
    return table


MIME_TYPES = _load_table()


def guess_content_type(filename: str, table: dict[str, str] = MIME_TYPES) -> str:
    """
    Find the content type for the longest extension of the filename that occurs in the table,
    e.g. backup.tar.gz tries "tar.gz" before "gz"
    """
    name = filename.rsplit("/", 1)[-1].lower()
    parts = name.split(".")[1:]
    for i in range(len(parts)):
        ext = ".".join(parts[i:])
        if ext in table:
            return table[ext]
    return DEFAULT_CONTENT_TYPE
