"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Values from a local .env file never override variables already exported.
load_dotenv()

DEFAULT_MAPPING_PATH = str(Path(__file__).with_name("product-mapping.json"))


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


def _get_bool(name: str, default: str) -> bool:
    return _get_env(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    es_url: str = _get_env("ELASTICSEARCH_URL", "https://localhost:9200")
    es_username: str = _get_env("ELASTICSEARCH_USERNAME", "")
    es_password: str = _get_env("ELASTICSEARCH_PASSWORD", "")
    es_ca_path: str = _get_env("ELASTICSEARCH_CA_PATH", "")
    es_index: str = _get_env("ELASTICSEARCH_INDEX", "products")
    products_path: str = _get_env("PRODUCTS_PATH", "data/products.json")
    mapping_path: str = _get_env("MAPPING_PATH", DEFAULT_MAPPING_PATH)
    load_on_startup: bool = _get_bool("LOAD_ON_STARTUP", "true")
    fuzzy_search: bool = _get_bool("FUZZY_SEARCH", "true")
    suggest_size: int = int(_get_env("SUGGEST_SIZE", "5"))
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
