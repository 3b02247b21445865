from datetime import timedelta

from bucketfs.models import FileEntry
from bucketfs.vfs.urls import DeliveryPolicy, URLResolver, compile_rule, first_match


def test_plain_url(resolver, bucket):
    assert resolver.resolve("s3://plain/z.png") == "http://localhost:9000/unittest/plain/z.png"
    assert bucket.signed == []


def test_public_domain(bucket, cache, settings):
    settings.public_domain = "cdn.example.com"
    settings.use_https = True
    resolver = URLResolver(bucket, cache, settings=settings)
    assert resolver.resolve("s3://plain/z.png") == "https://cdn.example.com/plain/z.png"


def test_torrent(resolver, bucket):
    url = resolver.resolve("s3://videos/x.mp4")
    assert "torrent" in url
    [signed] = bucket.signed
    assert signed["key"] == "videos/x.mp4"
    assert signed["torrent"] is True


def test_presigned_timeout(resolver, bucket):
    resolver.resolve("s3://secret/y.pdf")
    assert bucket.signed[-1]["expires"] == timedelta(seconds=60)
    assert bucket.signed[-1]["torrent"] is False
    # Patterns without a timeout use the default
    resolver.resolve("s3://private/y.pdf")
    assert bucket.signed[-1]["expires"] == timedelta(seconds=30)


def test_forced_download(resolver, bucket):
    resolver.resolve("s3://downloads/report.pdf")
    [signed] = bucket.signed
    assert signed["response_headers"] == {"response-content-disposition": 'attachment; filename="report.pdf"'}


def test_forced_download_nested(resolver, bucket):
    url = resolver.resolve("s3://downloads/2024/q1/summary.csv")
    assert url.startswith("https://signed.example.com/downloads/2024/q1/summary.csv")
    assert bucket.signed[-1]["response_headers"] == {
        "response-content-disposition": 'attachment; filename="summary.csv"'
    }


def test_first_match_wins(bucket, cache, settings):
    settings.presigned_paths = ["10|secret/deep/*", "99|secret/*"]
    resolver = URLResolver(bucket, cache, settings=settings)
    resolver.resolve("s3://secret/deep/a.txt")
    assert bucket.signed[-1]["expires"] == timedelta(seconds=10)
    resolver.resolve("s3://secret/a.txt")
    assert bucket.signed[-1]["expires"] == timedelta(seconds=99)


def test_missing_derivative(resolver, bucket, cache):
    assert resolver.resolve("s3://styles/thumb/cat.jpg") == "http://localhost:5000/bucketfs/styles/thumb/cat.jpg"
    cache.write(FileEntry(uri="s3://styles/thumb/cat.jpg"))
    assert resolver.resolve("s3://styles/thumb/cat.jpg") == "http://localhost:9000/unittest/styles/thumb/cat.jpg"


def test_override(resolver, bucket):
    def always_presign(url_settings, key):
        if key.endswith(".pdf"):
            url_settings.presigned = True
            url_settings.timeout = 5

    resolver.add_override(always_presign)
    resolver.resolve("s3://plain/a.pdf")
    assert bucket.signed[-1]["expires"] == timedelta(seconds=5)

    def add_query(url_settings, key):
        url_settings.query = {"v": "2"}

    resolver.add_override(add_query)
    assert resolver.resolve("s3://plain/a.png") == "http://localhost:9000/unittest/plain/a.png?v=2"


def test_policy_from_settings(settings):
    policy = DeliveryPolicy.from_settings(settings)
    assert [r.pattern for r in policy.torrent] == ["videos/*"]
    assert [(r.pattern, r.timeout) for r in policy.presigned] == [("secret/*", 60), ("private/*", 30)]
    assert [r.pattern for r in policy.saveas] == ["downloads/*"]


def test_wildcards_match_subdirectories():
    rules = [compile_rule("videos/*"), compile_rule("*.mp3")]
    assert first_match(rules, "videos/2024/x.mp4").pattern == "videos/*"
    assert first_match(rules, "music/a/b.mp3").pattern == "*.mp3"
    assert first_match(rules, "other/videos/x.mp4") is None
