"""
Process-wide connections used by bucketfs.

There is one Elasticsearch client (for the metadata cache) and one minio client
(for the bucket). Both are created lazily on first use and shared by every StreamHandle.
Use bucketfs_connections() to explicitly start and tear them down, e.g. in a server
lifespan or in the test session setup.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from elasticsearch import Elasticsearch
from minio import Minio

from bucketfs.config import get_settings, s3_enabled


class StoreUnavailable(Exception):
    """The bucket cannot be reached, the credentials are wrong, or the bucket does not exist"""


class BucketfsConnections:
    elastic: Elasticsearch | None
    s3_client: Minio | None

    def __init__(self, elastic: Elasticsearch | None = None, s3_client: Minio | None = None):
        self.elastic = elastic
        self.s3_client = s3_client


CONNECTIONS = BucketfsConnections()


@contextmanager
def bucketfs_connections() -> Iterator[None]:
    """
    The main context manager to start and stop connections used by bucketfs.
    Use this once per process (server lifespan, CLI command, or test session).
    """
    try:
        s3()
        es()
        yield
    finally:
        close_connections()


def es() -> Elasticsearch:
    """
    Use this function to access the elasticsearch connection.
    """
    if CONNECTIONS.elastic is None:
        CONNECTIONS.elastic = _setup_elastic()
    return CONNECTIONS.elastic


def s3() -> Minio:
    """
    Use this function to access the s3 client.
    """
    if CONNECTIONS.s3_client is None:
        CONNECTIONS.s3_client = _connect_s3()
    return CONNECTIONS.s3_client


def close_connections() -> None:
    if CONNECTIONS.elastic is not None:
        CONNECTIONS.elastic.close()
        CONNECTIONS.elastic = None
    # minio has no explicit close, its urllib3 pool is released with the client
    CONNECTIONS.s3_client = None


def _connect_s3() -> Minio:
    settings = get_settings()
    if not s3_enabled():
        raise StoreUnavailable("S3 is not configured, set bucketfs_s3_host, bucketfs_s3_access_key and bucketfs_s3_secret_key")
    logging.debug(f"Connecting with S3 at {settings.s3_host}, bucket {settings.bucket!r}")
    return Minio(
        settings.s3_host,  # type: ignore[arg-type]
        access_key=settings.s3_access_key,
        secret_key=settings.s3_secret_key,
        secure=settings.s3_tls,
        region=settings.s3_region,
    )


def _connect_elastic() -> Elasticsearch:
    """
    Connect to the elastic server using the system settings
    """
    settings = get_settings()
    if settings.elastic_password:
        host = settings.elastic_host
        if settings.elastic_verify_ssl is None:
            verify_certs = "localhost" in (host or "")
        else:
            verify_certs = settings.elastic_verify_ssl

        return Elasticsearch(
            host,
            basic_auth=("elastic", settings.elastic_password),
            verify_certs=verify_certs,
        )
    else:
        return Elasticsearch(settings.elastic_host or None)


def _setup_elastic() -> Elasticsearch:
    """
    Check whether we can connect with elastic
    """
    settings = get_settings()
    logging.debug(
        f"Connecting with elasticsearch at {settings.elastic_host}, "
        f"password? {'yes' if settings.elastic_password else 'no'} "
    )
    elastic = _connect_elastic()
    if not elastic.ping():
        raise ConnectionError(f"Cannot connect to elasticsearch server {settings.elastic_host}")
    return elastic
