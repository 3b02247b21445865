"""
bucketfs administration
"""

import argparse
import logging
import sys

from bucketfs.cache.elastic_store import ElasticCacheStore
from bucketfs.cache.metadata import MetadataCache
from bucketfs.config import ENV_PREFIX, get_settings
from bucketfs.connections import StoreUnavailable, bucketfs_connections
from bucketfs.objectstorage.s3bucket import S3Bucket
from bucketfs.vfs.reconcile import CacheReconciler, ReconcileInterrupted


def refresh_cache(args) -> None:
    settings = get_settings()
    with bucketfs_connections():
        bucket = S3Bucket(settings.bucket)
        cache = MetadataCache(ElasticCacheStore(settings.cache_index))
        reconciler = CacheReconciler(bucket, cache, scheme=settings.scheme, page_size=args.page_size)
        try:
            result = reconciler.refresh(start_after=args.start_after)
        except ReconcileInterrupted as e:
            logging.error(f"{e}\nRun again with --start-after {e.marker!r} to continue")
            sys.exit(1)
    logging.info(
        f"Cached {result.files} files and {result.directories} directories "
        f"({result.conflicts} conflicts) in {result.pages} pages"
    )


def validate(args) -> None:
    with bucketfs_connections():
        S3Bucket(get_settings().bucket).validate()
    logging.info(f"Bucket {get_settings().bucket!r} is available")


def echo_config(args) -> None:
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m bucketfs")

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("refresh", help="Rebuild the metadata cache from the bucket listing")
    p.add_argument("--start-after", help="Resume an interrupted refresh after this key", default=None)
    p.add_argument("--page-size", help="Number of keys per listing page", type=int, default=1000)
    p.set_defaults(func=refresh_cache)

    p = subparsers.add_parser("validate", help="Check that the bucket is reachable")
    p.set_defaults(func=validate)

    p = subparsers.add_parser("config", help="Print the current settings as environment variables")
    p.set_defaults(func=echo_config)

    args = parser.parse_args()

    logging.basicConfig(format="[%(levelname)-7s:%(name)-15s] %(message)s", level=logging.INFO)
    es_logger = logging.getLogger("elastic_transport")
    es_logger.setLevel(logging.WARNING)

    try:
        args.func(args)
    except StoreUnavailable as e:
        logging.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
