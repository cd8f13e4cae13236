"""Search logic built on top of Elasticsearch.

:class:`SearchGateway` owns the client and composes query builder, engine
call and normalizer for every operation the HTTP layer exposes. Each method
is one blocking round trip (or one per record for writes); callers on the
event loop run them with ``asyncio.to_thread``.

Writes are not atomic across a batch. ``index_products`` and
``update_products`` send one request per record with ``refresh=true`` and
stop at the first failure: records before it stay written, records after it
are never sent, and nothing is retried or rolled back.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from elasticsearch import ApiError, Elasticsearch, TransportError

from .errors import UpstreamError
from .indexing import ensure_index, index_is_empty
from .models import AggregateSummary, Product, ProductUpdate, SearchRequest
from .normalizer import normalize_aggregations, normalize_hits, normalize_suggestions
from .query_builder import (
    DEFAULT_SUGGEST_SIZE,
    build_aggregation_query,
    build_search_query,
    build_suggest_query,
    build_update_script,
)

logger = logging.getLogger(__name__)

ENGINE_ERRORS = (ApiError, TransportError)


def _body(response: Any) -> Dict[str, Any]:
    # The client returns ObjectApiResponse; the plain dict lives on ``.body``.
    body = getattr(response, "body", response)
    return dict(body) if isinstance(body, Mapping) else body


def _describe(exc: Exception) -> str:
    # Transport errors render a fixed label; the underlying text is on ``.message``.
    text = str(exc)
    message = getattr(exc, "message", None)
    if message is not None and str(message) not in text:
        return f"{text}: {message}"
    return text


class SearchGateway:
    def __init__(
        self,
        client: Elasticsearch,
        index: str,
        *,
        fuzzy: bool = True,
        suggest_size: int = DEFAULT_SUGGEST_SIZE,
    ) -> None:
        self.client = client
        self.index = index
        self.fuzzy = fuzzy
        self.suggest_size = suggest_size

    def ensure_index(self, mapping_path: str | Path) -> bool:
        try:
            return ensure_index(self.client, self.index, Path(mapping_path))
        except ENGINE_ERRORS as exc:
            raise UpstreamError(f"error creating index {self.index}: {_describe(exc)}") from exc

    def is_empty(self) -> bool:
        try:
            return index_is_empty(self.client, self.index)
        except ENGINE_ERRORS as exc:
            raise UpstreamError(f"error counting documents: {_describe(exc)}") from exc

    def health(self) -> str | None:
        try:
            return _body(self.client.cluster.health()).get("status")
        except ENGINE_ERRORS as exc:
            raise UpstreamError(f"error getting cluster health: {_describe(exc)}") from exc

    def index_products(self, products: Iterable[Product]) -> int:
        written = 0
        for product in products:
            try:
                self.client.index(
                    index=self.index,
                    id=product.id,
                    document=product.to_document(),
                    refresh=True,
                )
            except ENGINE_ERRORS as exc:
                raise UpstreamError(
                    f"error indexing product {product.id} after {written} written: {_describe(exc)}"
                ) from exc
            written += 1
        return written

    def update_products(self, updates: Iterable[ProductUpdate]) -> int:
        written = 0
        for update in updates:
            try:
                self.client.update(
                    index=self.index,
                    id=update.id,
                    script=build_update_script(update),
                    refresh=True,
                )
            except ENGINE_ERRORS as exc:
                raise UpstreamError(
                    f"error updating product with ID {update.id} after {written} written: {_describe(exc)}"
                ) from exc
            written += 1
        return written

    def search(self, request: SearchRequest) -> List[Product]:
        body = build_search_query(request, fuzzy=self.fuzzy)
        try:
            response = self.client.search(index=self.index, body=body)
        except ENGINE_ERRORS as exc:
            raise UpstreamError(f"error searching products: {_describe(exc)}") from exc
        return normalize_hits(_body(response))

    def aggregate(self) -> AggregateSummary:
        try:
            response = self.client.search(index=self.index, body=build_aggregation_query())
        except ENGINE_ERRORS as exc:
            raise UpstreamError(f"error performing aggregation: {_describe(exc)}") from exc
        return normalize_aggregations(_body(response))

    def suggest(self, prefix: str) -> List[str]:
        body = build_suggest_query(prefix, self.suggest_size)
        try:
            response = self.client.search(index=self.index, body=body)
        except ENGINE_ERRORS as exc:
            raise UpstreamError(f"error performing suggest query: {_describe(exc)}") from exc
        return normalize_suggestions(_body(response), self.suggest_size)

    def stats(self) -> Dict[str, Any]:
        try:
            return _body(self.client.indices.stats(index=self.index))
        except ENGINE_ERRORS as exc:
            raise UpstreamError(f"error getting index stats: {_describe(exc)}") from exc
