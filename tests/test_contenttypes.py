from bucketfs.objectstorage.contenttypes import DEFAULT_CONTENT_TYPE, guess_content_type


def test_guess_content_type():
    assert guess_content_type("photos/cat.JPG") == "image/jpeg"
    assert guess_content_type("a/b/report.pdf") == "application/pdf"
    assert guess_content_type("README") == DEFAULT_CONTENT_TYPE
    assert guess_content_type("data.unknownext") == DEFAULT_CONTENT_TYPE


def test_longest_suffix_wins():
    table = {"gz": "application/gzip", "tar.gz": "application/x-gtar"}
    assert guess_content_type("backup.tar.gz", table) == "application/x-gtar"
    assert guess_content_type("notes.txt.gz", table) == "application/gzip"
    assert guess_content_type("dir.v2/file", table) == DEFAULT_CONTENT_TYPE
