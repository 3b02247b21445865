import pytest

from bucketfs.vfs.paths import (
    ancestors,
    basename,
    children_prefix,
    depth,
    dirname,
    is_root,
    key_basename,
    normalize,
    split_uri,
)


def test_split_uri():
    assert split_uri("s3://a/b.txt") == ("s3", "a/b.txt")
    assert split_uri("s3://a/b/") == ("s3", "a/b")
    assert split_uri("s3://") == ("s3", "")
    with pytest.raises(ValueError):
        split_uri("a/b.txt")


def test_dirname():
    assert dirname("s3://a/b/c.txt") == "s3://a/b"
    assert dirname("s3://a/b") == "s3://a"
    assert dirname("s3://a") == "s3://"
    assert dirname("s3://") == "s3://"


@pytest.mark.parametrize("uri", ["s3://", "s3://a", "s3://a/b/c/d/e.txt", "s3://x/y/"])
def test_dirname_reaches_root(uri):
    expected = depth(uri)
    steps = 0
    while not is_root(uri):
        uri = dirname(uri)
        steps += 1
        assert steps <= expected
    assert steps == expected
    assert dirname(uri) == uri
    assert normalize(uri) == "s3://"


def test_ancestors():
    assert list(ancestors("s3://a/b/c.txt")) == ["s3://a/b", "s3://a"]
    assert list(ancestors("s3://a")) == []


def test_basename_and_prefix():
    assert basename("s3://a/b/c.txt") == "c.txt"
    assert key_basename("a/b/c.txt") == "c.txt"
    assert key_basename("c.txt") == "c.txt"
    assert children_prefix("s3://a/b") == "s3://a/b/"
    assert children_prefix("s3://") == "s3://"
