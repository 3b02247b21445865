"""
Helpers for filesystem URIs such as s3://photos/2024/cat.jpg

The part after the scheme is the object key. The root of the filesystem is the bare
scheme (s3://), which is an implicit directory that is never stored in the cache.
"""

from typing import Iterator

SEPARATOR = "/"
SCHEME_SEPARATOR = "://"


def split_uri(uri: str) -> tuple[str, str]:
    """
    Split a uri into its scheme and key, e.g. s3://a/b.txt -> ("s3", "a/b.txt").
    Trailing separators are removed from the key.
    """
    scheme, sep, key = uri.partition(SCHEME_SEPARATOR)
    if not sep:
        raise ValueError(f"Not a filesystem uri: {uri!r}")
    return scheme, key.strip(SEPARATOR)


def to_key(uri: str) -> str:
    return split_uri(uri)[1]


def to_uri(scheme: str, key: str) -> str:
    return f"{scheme}{SCHEME_SEPARATOR}{key.strip(SEPARATOR)}"


def root(uri: str) -> str:
    return to_uri(split_uri(uri)[0], "")


def is_root(uri: str) -> bool:
    return to_key(uri) == ""


def normalize(uri: str) -> str:
    return to_uri(*split_uri(uri))


def dirname(uri: str) -> str:
    """
    The parent directory of a uri. The parent of a top-level entry, and of the root, is the root.
    """
    scheme, key = split_uri(uri)
    parent, _, _ = key.rpartition(SEPARATOR)
    return to_uri(scheme, parent)


def key_basename(key: str) -> str:
    return key.strip(SEPARATOR).rsplit(SEPARATOR, 1)[-1]


def basename(uri: str) -> str:
    return key_basename(to_key(uri))


def depth(uri: str) -> int:
    key = to_key(uri)
    return len(key.split(SEPARATOR)) if key else 0


def ancestors(uri: str) -> Iterator[str]:
    """
    Yield the strict ancestors of a uri below the root, nearest first
    """
    parent = dirname(uri)
    while not is_root(parent):
        yield parent
        parent = dirname(parent)


def children_prefix(uri: str) -> str:
    """
    The prefix shared by every uri inside this directory
    """
    return normalize(uri) if is_root(uri) else normalize(uri) + SEPARATOR
