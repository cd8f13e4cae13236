"""Pydantic models for request/response payloads."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

SUGGEST_WEIGHT = 10


class SuggestField(BaseModel):
    input: list[str]
    weight: int = SUGGEST_WEIGHT


def suggest_hints(name: str, category: str) -> SuggestField:
    """Completion inputs are drawn from the product name and its category."""
    return SuggestField(input=[part for part in (name, category) if part])


class Product(BaseModel):
    id: str = Field(..., description="Caller-assigned id, used as the document key")
    name: str
    description: str
    price: float = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    category: str
    created_at: str

    @field_validator("price", mode="before")
    @classmethod
    def _price_is_not_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("price must be a number, not a boolean")
        return value

    @field_validator("stock", mode="before")
    @classmethod
    def _narrow_stock(cls, value: Any) -> Any:
        # The engine may hand back 4.0 for an integer field.
        if isinstance(value, bool):
            raise ValueError("stock must be a number, not a boolean")
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    def to_document(self) -> dict:
        document = self.model_dump()
        document["suggest"] = suggest_hints(self.name, self.category).model_dump()
        return document


class ProductUpdate(BaseModel):
    """Partial update; only the fields present in the payload are written.

    Suggest hints are always rebuilt on the engine side from the stored name
    (or the new one) and the new category.
    """

    id: str
    category: str
    name: str | None = None
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    created_at: str | None = None

    def to_partial_document(self) -> dict:
        return self.model_dump(exclude_none=True)


class SearchRequest(BaseModel):
    query: str = Field(..., description="Full-text query matched against the name")
    page: int = Field(1, ge=1)
    size: int = Field(10, ge=1)
    sort: str = "price"
    category: str | None = None
    price_min: str | None = None
    price_max: str | None = None
    stock_min: str | None = None
    stock_max: str | None = None
    created_at_min: str | None = None
    created_at_max: str | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size

    def filters(self) -> dict:
        """Filter parameters as supplied, for logging."""
        return self.model_dump(exclude={"query", "page", "size", "sort"}, exclude_none=True)


class AggregateSummary(BaseModel):
    # None is the "no data" value, e.g. for an empty index.
    average_price: float | None = None
    min_price: float | None = None
    max_price: float | None = None
