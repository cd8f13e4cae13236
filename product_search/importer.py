"""Seed data importer run before the service starts serving."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError, ValidationError
from .gateway import SearchGateway
from .models import Product, ProductUpdate

logger = logging.getLogger(__name__)

_PRODUCT_LIST = TypeAdapter(List[Product])


def require_categories(records: List[Product] | List[ProductUpdate], action: str = "products") -> None:
    """Reject the whole batch before any write when one record lacks a category."""
    for record in records:
        if not record.category.strip():
            raise ValidationError(f"All {action} must include a 'category'")


def load_products(path: Path) -> List[Product]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except OSError as exc:
        raise ConfigurationError(f"error reading products file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"error unmarshaling products from {path}: {exc}") from exc
    try:
        return _PRODUCT_LIST.validate_python(raw)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"invalid product records in {path}: {exc}") from exc


def import_products(gateway: SearchGateway, path: Path) -> int:
    products = load_products(path)
    try:
        require_categories(products)
    except ValidationError as exc:
        raise ConfigurationError(f"{path}: {exc.message}") from exc
    count = gateway.index_products(products)
    logger.info("Indexed %s products from %s", count, path)
    return count
