"""Full-text search backends."""

from .base import BulkIndexError, Indexer, IndexerError
from .factory import IndexerFactory

__all__ = ["BulkIndexError", "Indexer", "IndexerError", "IndexerFactory"]
