import structlog

from textus.config import Settings, get_settings
from textus.datastore.base import DocumentStore
from textus.datastore.memory import InMemoryDocumentStore
from textus.datastore.sql import SqlDocumentStore

logger = structlog.get_logger()


def build_store(settings: Settings) -> DocumentStore:
    """Pick the document store backend named in settings."""
    backend = settings.store_backend.lower()
    if backend == "memory":
        store = InMemoryDocumentStore()
    elif backend == "sql":
        store = SqlDocumentStore(settings.database_url)
    else:
        raise ValueError(f"Unknown store backend: {settings.store_backend}")
    logger.info("document_store_selected", backend=backend, index=settings.store_index)
    return store


datastore = build_store(get_settings())
