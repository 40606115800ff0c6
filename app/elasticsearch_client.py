"""
Elasticsearch client configuration.
"""
from typing import Any

from elasticsearch import AsyncElasticsearch

from app.config import Settings


def build_es_config(settings: Settings) -> dict[str, Any]:
    """Build AsyncElasticsearch keyword arguments from settings."""
    config: dict[str, Any] = {
        "hosts": [settings.elasticsearch_node],
        "request_timeout": settings.http_timeout_seconds,
        "max_retries": 3,
        "retry_on_timeout": True,
    }
    if settings.elasticsearch_api_key:
        config["api_key"] = settings.elasticsearch_api_key
    return config


def create_es_client(settings: Settings) -> AsyncElasticsearch:
    """Create an async Elasticsearch client. The caller closes it."""
    return AsyncElasticsearch(**build_es_config(settings))
