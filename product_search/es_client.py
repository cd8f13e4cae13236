"""Elasticsearch client factory.

The rest of the code works against the official synchronous client. Blocking
calls are wrapped via ``asyncio.to_thread`` by the caller where necessary.
"""
from __future__ import annotations

import logging
from pathlib import Path

from elasticsearch import ApiError, Elasticsearch, TransportError

from .config import Settings
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def _read_ca_certificate(path: str) -> bytes:
    # PEM or DER; read as bytes so a binary file is not a decode error.
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise ConfigurationError(f"error reading CA certificate {path}: {exc}") from exc


def create_client(settings: Settings) -> Elasticsearch:
    """Build a client from settings and verify the cluster answers.

    Any failure here is fatal: the service does not start without a working
    connection.
    """
    options: dict = {}
    if settings.es_username:
        options["basic_auth"] = (settings.es_username, settings.es_password)
    if settings.es_ca_path:
        options["ca_certs"] = settings.es_ca_path
        # Fail early with a clear message rather than inside the TLS handshake.
        _read_ca_certificate(settings.es_ca_path)

    logger.info("Connecting to Elasticsearch at %s", settings.es_url)
    try:
        client = Elasticsearch(settings.es_url, **options)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"error creating Elasticsearch client: {exc}") from exc
    try:
        info = client.info()
    except (ApiError, TransportError) as exc:
        client.close()
        raise ConfigurationError(f"error connecting to Elasticsearch: {getattr(exc, 'message', exc)}") from exc
    logger.info(
        "Connected to Elasticsearch cluster=%s version=%s",
        info.get("cluster_name"),
        info.get("version", {}).get("number"),
    )
    return client
