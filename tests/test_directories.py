import pytest

from bucketfs.models import FileEntry
from bucketfs.vfs.directories import DirectoryEmulator


@pytest.fixture()
def directories(cache):
    return DirectoryEmulator(cache)


def test_mkdir(directories):
    assert not directories.is_directory("s3://photos")
    assert directories.mkdir("s3://photos")
    assert directories.is_directory("s3://photos")
    # existing directories are fine
    assert directories.mkdir("s3://photos")


def test_mkdir_on_file_fails(directories, cache):
    cache.write(FileEntry(uri="s3://photos.jpg"))
    assert not directories.mkdir("s3://photos.jpg")
    assert not directories.is_directory("s3://photos.jpg")


def test_mkdir_recursive(directories, store):
    assert directories.mkdir("s3://a/b/c", recursive=True)
    assert {r.uri for r in store.scan()} == {"s3://a", "s3://a/b", "s3://a/b/c"}


def test_root(directories):
    assert directories.is_directory("s3://")
    assert directories.mkdir("s3://")
    assert not directories.rmdir("s3://")
    assert directories.list_directory("s3://") == []


def test_rmdir(directories, store):
    directories.mkdir("s3://a/b", recursive=True)
    assert not directories.rmdir("s3://a")
    assert directories.rmdir("s3://a/b")
    assert {r.uri for r in store.scan()} == {"s3://a"}
    assert directories.rmdir("s3://a")
    assert list(store.scan()) == []
    assert not directories.rmdir("s3://a")


def test_rmdir_only_checks_real_children(directories, cache):
    directories.mkdir("s3://a")
    cache.write(FileEntry(uri="s3://ab.txt"))
    assert directories.rmdir("s3://a")
    assert cache.read("s3://ab.txt") is not None


def test_rmdir_file_fails(directories, cache):
    cache.write(FileEntry(uri="s3://a.txt"))
    assert not directories.rmdir("s3://a.txt")
    assert cache.read("s3://a.txt") is not None


def test_list_directory(directories, cache):
    for uri in ["s3://a/b.txt", "s3://a/c/d.txt", "s3://a/c/e/f.txt", "s3://z.txt"]:
        cache.write(FileEntry(uri=uri))
    assert directories.list_directory("s3://a") == ["b.txt", "c"]
    assert directories.list_directory("s3://a/c") == ["d.txt", "e"]
    assert directories.list_directory("s3://") == ["a", "z.txt"]
    assert directories.list_directory("s3://z.txt") is None
    assert directories.list_directory("s3://missing") is None
