"""
Metadata cache stored in an elasticsearch index.

Each record is a document with a deterministic id derived from its uri, so upserts for the
same uri from concurrent writers always hit the same document and converge.
The uri is mapped as a keyword so directory listings can use prefix queries.
"""

import logging
import uuid
from typing import Iterable

from elasticsearch import ConflictError

from bucketfs.cache.store import CacheConflict, CacheStore, Kind, Record, find_duplicates
from bucketfs.config import get_settings
from bucketfs.connections import es
from bucketfs.elastic.util import BulkInsertAction, es_bulk_create, es_bulk_upsert, index_scan
from bucketfs.models import parse_record

CACHE_MAPPING = {
    "properties": {
        "kind": {"type": "keyword"},
        "uri": {"type": "keyword"},
        "filesize": {"type": "long"},
        "timestamp": {"type": "long"},
        "mode": {"type": "integer"},
        "owner": {"type": "keyword"},
    }
}


def cache_doc_id(uri: str) -> str:
    return str(uuid.uuid5(uuid.NAMESPACE_URL, uri))


class ElasticCacheStore(CacheStore):
    def __init__(self, index: str | None = None, batchsize: int = 1000):
        self.index = index or get_settings().cache_index
        self.batchsize = batchsize
        self._ready = False

    def _ensure_index(self) -> str:
        if not self._ready:
            if not es().indices.exists(index=self.index):
                logging.info(f"Creating metadata cache index {self.index}")
                es().indices.create(index=self.index, mappings=CACHE_MAPPING)
            self._ready = True
        return self.index

    def drop(self) -> None:
        """Remove the whole cache index"""
        es().options(ignore_status=[404]).indices.delete(index=self.index)
        self._ready = False

    def get(self, uri: str) -> Record | None:
        doc = es().options(ignore_status=[404]).get(index=self._ensure_index(), id=cache_doc_id(uri))
        if not doc["found"]:
            return None
        return parse_record(doc["_source"])

    def upsert(self, record: Record) -> None:
        es().update(
            index=self._ensure_index(), id=cache_doc_id(record.uri), doc=record.model_dump(), doc_as_upsert=True, refresh=True
        )

    def create(self, record: Record) -> None:
        try:
            es().create(index=self._ensure_index(), id=cache_doc_id(record.uri), document=record.model_dump(), refresh=True)
        except ConflictError as e:
            raise CacheConflict([record.uri]) from e

    def create_many(self, records: list[Record]) -> None:
        index = self._ensure_index()
        conflicts = self._existing([r.uri for r in records])
        if conflicts:
            raise CacheConflict(conflicts)
        es_bulk_create(
            (BulkInsertAction(index=index, id=cache_doc_id(r.uri), doc=r.model_dump()) for r in records),
            batchsize=self.batchsize,
        )

    def upsert_many(self, records: list[Record]) -> None:
        index = self._ensure_index()
        es_bulk_upsert(
            (BulkInsertAction(index=index, id=cache_doc_id(r.uri), doc=r.model_dump()) for r in records),
            batchsize=self.batchsize,
        )

    def delete(self, uris: Iterable[str]) -> int:
        ids = [cache_doc_id(uri) for uri in uris]
        if not ids:
            return 0
        result = es().delete_by_query(index=self._ensure_index(), query={"ids": {"values": ids}}, refresh=True)
        return result["deleted"]

    def delete_files(self) -> int:
        result = es().delete_by_query(index=self._ensure_index(), query={"term": {"kind": "file"}}, refresh=True)
        return result["deleted"]

    def scan(self, prefix: str | None = None, kind: Kind | None = None) -> Iterable[Record]:
        filters: list[dict] = []
        if prefix:
            filters.append({"prefix": {"uri": prefix}})
        if kind:
            filters.append({"term": {"kind": kind}})
        query = {"bool": {"filter": filters}} if filters else None
        for _id, doc in index_scan(self._ensure_index(), batchsize=self.batchsize, query=query):
            yield parse_record(doc)

    def _existing(self, uris: list[str]) -> list[str]:
        """
        Return the uris that are already in the cache, or occur more than once in the list
        """
        if not uris:
            return []
        res = es().mget(index=self.index, ids=[cache_doc_id(uri) for uri in uris], source_includes=["uri"])
        return [doc["_source"]["uri"] for doc in res["docs"] if doc.get("found")] + find_duplicates(uris)
