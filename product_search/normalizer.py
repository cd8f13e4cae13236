"""Turn raw Elasticsearch responses back into typed models."""
from __future__ import annotations

import logging
from typing import Any, List, Mapping

from pydantic import ValidationError as PydanticValidationError

from .errors import MalformedResult
from .models import AggregateSummary, Product
from .query_builder import DEFAULT_SUGGEST_SIZE, PRICE_AGGREGATIONS, SUGGEST_NAME

logger = logging.getLogger(__name__)


def normalize_hits(response: Mapping[str, Any]) -> List[Product]:
    """Validate every hit's ``_source`` into a :class:`Product`, keeping engine order.

    Validation is strict: a string price or a boolean stock is malformed, not
    converted. The one exception is an integral float stock such as ``3.0``,
    which :class:`Product` narrows to ``int``. No field is ever zeroed.
    """
    try:
        hits = response["hits"]["hits"]
    except (KeyError, TypeError) as exc:
        raise MalformedResult("Search response has no hits list") from exc
    if not isinstance(hits, list):
        raise MalformedResult("Search response hits is not a list")

    products: List[Product] = []
    for position, hit in enumerate(hits):
        source = hit.get("_source") if isinstance(hit, Mapping) else None
        if not isinstance(source, Mapping):
            raise MalformedResult(f"Hit {position} has no _source document")
        try:
            products.append(Product.model_validate(dict(source), strict=True))
        except PydanticValidationError as exc:
            raise MalformedResult(f"Hit {position} (id={source.get('id')!r}) is malformed: {exc}") from exc
    return products


def _bucket_value(aggregations: Mapping[str, Any], name: str) -> float | None:
    bucket = aggregations.get(name)
    if not isinstance(bucket, Mapping):
        return None
    value = bucket.get("value")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedResult(f"Aggregation {name} has non-numeric value {value!r}")
    return float(value)


def normalize_aggregations(response: Mapping[str, Any]) -> AggregateSummary:
    aggregations = response.get("aggregations") or {}
    if not isinstance(aggregations, Mapping):
        raise MalformedResult("Aggregation response is not an object")
    return AggregateSummary(**{name: _bucket_value(aggregations, name) for name in PRICE_AGGREGATIONS})


def normalize_suggestions(response: Mapping[str, Any], size: int = DEFAULT_SUGGEST_SIZE) -> List[str]:
    groups = (response.get("suggest") or {}).get(SUGGEST_NAME, [])
    if not isinstance(groups, list):
        raise MalformedResult("Suggest response groups is not a list")

    suggestions: List[str] = []
    for group in groups:
        options = group.get("options", []) if isinstance(group, Mapping) else None
        if not isinstance(options, list):
            raise MalformedResult("Suggest group has no options list")
        for option in options[:size]:
            text = option.get("text") if isinstance(option, Mapping) else None
            if not isinstance(text, str):
                raise MalformedResult(f"Suggest option without text: {option!r}")
            suggestions.append(text)
    return suggestions
