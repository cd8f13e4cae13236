"""Shared fixtures: an in-memory stand-in for the Elasticsearch client."""
from __future__ import annotations

import copy

import pytest
from elasticsearch import ConnectionError as EsConnectionError

from product_search.gateway import SearchGateway
from product_search.models import Product

NUMERIC_FIELDS = {"price", "stock"}


class FakeIndices:
    def __init__(self, owner: "FakeElasticsearch") -> None:
        self.owner = owner
        self.created: list[tuple[str, dict]] = []

    def exists(self, index: str) -> bool:
        return index in self.owner.indices_created

    def create(self, index: str, body: dict) -> dict:
        self.owner.indices_created.add(index)
        self.created.append((index, body))
        return {"acknowledged": True}

    def stats(self, index: str) -> dict:
        return {"_all": {"primaries": {"docs": {"count": len(self.owner.docs)}}}, "indices": {index: {}}}


class FakeCluster:
    def health(self) -> dict:
        return {"status": "green"}


class FakeElasticsearch:
    """Keeps documents in a dict and answers the handful of query shapes we send."""

    def __init__(self) -> None:
        self.docs: dict[str, dict] = {}
        self.calls: list[tuple[str, dict]] = []
        self.fail_on: set[str] = set()
        self.search_error: Exception | None = None
        self.raw_search_response: dict | None = None
        self.indices_created: set[str] = set()
        self.closed = False
        self.indices = FakeIndices(self)
        self.cluster = FakeCluster()

    def info(self) -> dict:
        return {"cluster_name": "fake", "version": {"number": "8.13.0"}}

    def count(self, index: str) -> dict:
        return {"count": len(self.docs)}

    def index(self, index: str, id: str, document: dict, refresh: bool = False) -> dict:
        self.calls.append(("index", {"id": id, "refresh": refresh}))
        if id in self.fail_on:
            raise EsConnectionError(f"engine refused {id}")
        self.docs[id] = copy.deepcopy(document)
        return {"result": "created"}

    def update(self, index: str, id: str, script: dict, refresh: bool = False) -> dict:
        self.calls.append(("update", {"id": id, "refresh": refresh}))
        if id in self.fail_on or id not in self.docs:
            raise EsConnectionError(f"engine refused {id}")
        # Mirrors the painless update script: merge the fields, rebuild the hints.
        source = self.docs[id]
        params = script["params"]
        source.update(copy.deepcopy(params["doc"]))
        source["suggest"] = {"input": [source["name"], source["category"]], "weight": params["weight"]}
        return {"result": "updated"}

    def close(self) -> None:
        self.closed = True

    def search(self, index: str, body: dict) -> dict:
        self.calls.append(("search", body))
        if self.search_error is not None:
            raise self.search_error
        if self.raw_search_response is not None:
            return self.raw_search_response
        if "suggest" in body:
            return self._suggest(body["suggest"])
        if "aggs" in body:
            return self._aggregate()
        return self._query(body)

    def _suggest(self, suggesters: dict) -> dict:
        result = {}
        for name, entry in suggesters.items():
            prefix = entry["prefix"].lower()
            limit = entry["completion"]["size"]
            options = []
            for doc in sorted(self.docs.values(), key=lambda d: -d["suggest"]["weight"]):
                for text in doc["suggest"]["input"]:
                    if text.lower().startswith(prefix):
                        options.append({"text": text, "_score": doc["suggest"]["weight"]})
                        break
            result[name] = [{"text": entry["prefix"], "options": options[:limit]}]
        return {"suggest": result}

    def _aggregate(self) -> dict:
        prices = [doc["price"] for doc in self.docs.values()]
        if not prices:
            return {"hits": {"hits": []}, "aggregations": {
                "average_price": {"value": None},
                "min_price": {"value": None},
                "max_price": {"value": None},
            }}
        return {"hits": {"hits": []}, "aggregations": {
            "average_price": {"value": sum(prices) / len(prices)},
            "min_price": {"value": min(prices)},
            "max_price": {"value": max(prices)},
        }}

    def _matches(self, doc: dict, clauses: list[dict]) -> bool:
        for clause in clauses:
            if "match" in clause:
                (field, match), = clause["match"].items()
                terms = match["query"].lower().split()
                if not any(term in doc[field].lower() for term in terms):
                    return False
            elif "term" in clause:
                (field, value), = clause["term"].items()
                if doc[field] != value:
                    return False
            elif "range" in clause:
                (field, bounds), = clause["range"].items()
                cast = float if field in NUMERIC_FIELDS else str
                if not cast(bounds["gte"]) <= cast(doc[field]) <= cast(bounds["lte"]):
                    return False
        return True

    def _query(self, body: dict) -> dict:
        bool_query = body["query"]["bool"]
        clauses = bool_query["must"] + bool_query["filter"]
        matched = [doc for doc in self.docs.values() if self._matches(doc, clauses)]
        (sort_field, _), = body["sort"][0].items()
        matched.sort(key=lambda doc: doc[sort_field])
        window = matched[body["from"]: body["from"] + body["size"]]
        return {"hits": {"hits": [{"_id": doc["id"], "_source": copy.deepcopy(doc)} for doc in window]}}


@pytest.fixture
def fake_es() -> FakeElasticsearch:
    """An empty in-memory engine."""
    return FakeElasticsearch()


@pytest.fixture
def gateway(fake_es: FakeElasticsearch) -> SearchGateway:
    """Gateway bound to the in-memory engine with default options."""
    return SearchGateway(fake_es, "products")


@pytest.fixture
def laptop() -> Product:
    """The product the completion and round-trip checks revolve around."""
    return Product(
        id="1",
        name="Laptop",
        description="14 inch ultrabook",
        price=1299.99,
        stock=12,
        category="Electronics",
        created_at="2024-01-15T10:00:00Z",
    )


@pytest.fixture
def catalog(laptop: Product) -> list[Product]:
    """Four products across three categories, with distinct prices."""
    return [
        laptop,
        Product(id="2", name="Wireless Mouse", description="Silent clicks", price=24.5, stock=140,
                category="Electronics", created_at="2024-02-03T09:30:00Z"),
        Product(id="3", name="Coffee Mug", description="Ceramic mug", price=9.9, stock=300,
                category="Kitchen", created_at="2024-03-01T08:00:00Z"),
        Product(id="4", name="Laptop Sleeve", description="Padded sleeve", price=19.99, stock=80,
                category="Accessories", created_at="2024-03-12T16:45:00Z"),
    ]
