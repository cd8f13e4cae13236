"""Elasticsearch request bodies for search, updates, aggregation and suggestion.

Each clause kind is a small dataclass that renders its own JSON fragment;
:func:`build_search_query` composes them into one fixed schema:

    {"from", "size", "query": {"bool": {"must", "filter"}}, "sort", "highlight"}

Filters sit in ``bool.filter`` so they restrict the result set without
touching the relevance score, which comes from the ``must`` text match only.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .models import SUGGEST_WEIGHT, ProductUpdate, SearchRequest

logger = logging.getLogger(__name__)

MATCH_FIELD = "name"
HIGHLIGHT_FIELDS = ("name", "description")
RANGE_FIELDS = ("price", "stock", "created_at")
SUGGEST_NAME = "product-suggest"
SUGGEST_FIELD = "suggest"
DEFAULT_SUGGEST_SIZE = 5
PRICE_AGGREGATIONS = {
    "average_price": "avg",
    "min_price": "min",
    "max_price": "max",
}


@dataclass(frozen=True)
class MatchClause:
    field: str
    query: str
    fuzzy: bool = True

    def to_clause(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"query": self.query}
        if self.fuzzy:
            # AUTO scales the allowed edit distance with the term length.
            body["fuzziness"] = "AUTO"
        return {"match": {self.field: body}}


@dataclass(frozen=True)
class TermFilter:
    field: str
    value: str

    def to_clause(self) -> Dict[str, Any]:
        return {"term": {self.field: self.value}}


@dataclass(frozen=True)
class RangeFilter:
    field: str
    gte: str
    lte: str

    @classmethod
    def from_bounds(cls, field: str, lower: Optional[str], upper: Optional[str]) -> Optional["RangeFilter"]:
        """Only a closed range becomes a filter; one bound alone is dropped."""
        if not lower or not upper:
            return None
        return cls(field, lower, upper)

    def to_clause(self) -> Dict[str, Any]:
        return {"range": {self.field: {"gte": self.gte, "lte": self.lte}}}


Filter = Union[TermFilter, RangeFilter]


@dataclass(frozen=True)
class SortClause:
    # Passed through verbatim; Elasticsearch rejects unknown or unsortable fields.
    field: str
    order: str = "asc"

    def to_clause(self) -> Dict[str, Any]:
        return {self.field: {"order": self.order}}


@dataclass(frozen=True)
class Highlight:
    fields: tuple = HIGHLIGHT_FIELDS

    def to_clause(self) -> Dict[str, Any]:
        return {"fields": {name: {} for name in self.fields}}


@dataclass
class SearchQuery:
    match: MatchClause
    offset: int
    size: int
    sort: SortClause
    filters: List[Filter] = field(default_factory=list)
    highlight: Highlight = field(default_factory=Highlight)

    def to_body(self) -> Dict[str, Any]:
        return {
            "from": self.offset,
            "size": self.size,
            "query": {
                "bool": {
                    "must": [self.match.to_clause()],
                    "filter": [item.to_clause() for item in self.filters],
                }
            },
            "sort": [self.sort.to_clause()],
            "highlight": self.highlight.to_clause(),
        }


def collect_filters(request: SearchRequest) -> List[Filter]:
    filters: List[Filter] = []
    if request.category:
        filters.append(TermFilter("category", request.category))
    for name in RANGE_FIELDS:
        range_filter = RangeFilter.from_bounds(
            name,
            getattr(request, f"{name}_min"),
            getattr(request, f"{name}_max"),
        )
        if range_filter is not None:
            filters.append(range_filter)
    return filters


def build_search_query(request: SearchRequest, fuzzy: bool = True) -> Dict[str, Any]:
    query = SearchQuery(
        match=MatchClause(MATCH_FIELD, request.query, fuzzy=fuzzy),
        offset=request.offset,
        size=request.size,
        sort=SortClause(request.sort),
        filters=collect_filters(request),
    )
    body = query.to_body()
    logger.debug("ES search payload=%s", body)
    return body


def build_aggregation_query() -> Dict[str, Any]:
    return {
        "size": 0,
        "aggs": {name: {kind: {"field": "price"}} for name, kind in PRICE_AGGREGATIONS.items()},
    }


def build_suggest_query(prefix: str, size: int = DEFAULT_SUGGEST_SIZE) -> Dict[str, Any]:
    return {
        "suggest": {
            SUGGEST_NAME: {
                "prefix": prefix,
                "completion": {"field": SUGGEST_FIELD, "size": size},
            }
        }
    }


# Applies the partial document, then rebuilds the completion hints from the
# stored name and the category that was just written.
UPDATE_SCRIPT = (
    "ctx._source.putAll(params.doc); "
    "ctx._source.suggest = ['input': [ctx._source.name, ctx._source.category], 'weight': params.weight];"
)


def build_update_script(update: ProductUpdate) -> Dict[str, Any]:
    return {
        "source": UPDATE_SCRIPT,
        "lang": "painless",
        "params": {"doc": update.to_partial_document(), "weight": SUGGEST_WEIGHT},
    }
