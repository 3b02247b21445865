from typing import Iterable, Literal

import elasticsearch.helpers
from elasticsearch.helpers.errors import BulkIndexError
from pydantic import BaseModel

from bucketfs.connections import es


class BulkInsertAction(BaseModel):
    index: str
    id: str | None
    doc: dict


def es_bulk_create(generator: Iterable[BulkInsertAction], batchsize: int = 1000) -> None:
    return es_bulk_action(generator, op_type="create", batchsize=batchsize)


def es_bulk_upsert(generator: Iterable[BulkInsertAction], batchsize: int = 1000) -> None:
    return es_bulk_action(generator, op_type="update", batchsize=batchsize)


def es_bulk_action(
    generator: Iterable[BulkInsertAction],
    op_type: Literal["create", "update"],
    batchsize: int = 1000,
    refresh: bool = True,
) -> None:
    """
    Write cache records in bulk, batchsize actions per request.
    "create" fails for documents that already exist, "update" upserts them.
    """
    actions: list[dict] = []
    for item in generator:
        action: dict = {"_op_type": op_type, "_index": item.index, "_id": item.id}

        if op_type == "update":
            action["doc"] = item.doc
            action["doc_as_upsert"] = True
        else:
            action = {**item.doc, **action}
        actions.append(action)

        if len(actions) >= batchsize:
            bulk_helper_with_errors(actions, refresh=refresh)
            actions = []

    if len(actions) > 0:
        bulk_helper_with_errors(actions, refresh=refresh)


def bulk_helper_with_errors(actions: Iterable[dict], **kwargs) -> None:
    """
    elastic bulk but adding the reason for the first error if any
    """
    try:
        elasticsearch.helpers.bulk(es(), actions, **kwargs)
    except BulkIndexError as e:
        if e.errors:
            _, error = list(e.errors[0].items())[0]
            reason = error.get("error", {}).get("reason", error)
            e.args = e.args + (f"First error: {reason}",)
        raise


def index_scan(
    index: str,
    batchsize: int = 1000,
    query: dict | None = None,
    scroll: str = "5m",
) -> Iterable[tuple[str, dict]]:
    """
    Scan an index in batches of the given size. Yields documents one by one (batching behind the scenes).
    """
    query_body = {}
    if query is not None:
        query_body["query"] = query

    for hit in elasticsearch.helpers.scan(es(), index=index, query=query_body, scroll=scroll, size=batchsize):
        yield hit["_id"], hit["_source"]
