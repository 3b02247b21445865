from bucketfs.config import Settings


def test_path_lists_from_environment(monkeypatch):
    monkeypatch.setenv("BUCKETFS_TORRENT_PATHS", "videos/*\naudio/*")
    monkeypatch.setenv("BUCKETFS_PRESIGNED_PATHS", "60|secret/*, private/*")
    monkeypatch.setenv("BUCKETFS_SAVEAS_PATHS", '["downloads/*"]')
    settings = Settings()
    assert settings.torrent_paths == ["videos/*", "audio/*"]
    assert settings.presigned_paths == ["60|secret/*", "private/*"]
    assert settings.saveas_paths == ["downloads/*"]


def test_defaults(monkeypatch):
    monkeypatch.delenv("BUCKETFS_ELASTIC_HOST", raising=False)
    monkeypatch.delenv("BUCKETFS_ELASTIC_PASSWORD", raising=False)
    settings = Settings()
    assert settings.elastic_host == "http://localhost:9200"
    assert settings.scheme == "s3"
    assert settings.presigned_timeout == 60
    assert settings.bypass_cache is False


def test_verify_ssl(monkeypatch):
    monkeypatch.delenv("BUCKETFS_ELASTIC_VERIFY_SSL", raising=False)
    assert Settings(elastic_host="https://localhost:9200").elastic_verify_ssl is False
    assert Settings(elastic_host="https://es.example.com:9200").elastic_verify_ssl is True
    explicit = Settings(elastic_host="https://es.example.com:9200", elastic_verify_ssl=False)
    assert explicit.elastic_verify_ssl is False
