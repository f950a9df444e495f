"""Factory for creating code search backends."""

import logging
from typing import TYPE_CHECKING, Optional

from ..services.language_mapper import LanguageClassifier
from .base import Indexer

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)


class IndexerFactory:
    """Factory for creating a code search backend from configuration."""

    @staticmethod
    def create(
        config: "Config", classifier: Optional[LanguageClassifier] = None
    ) -> Indexer:
        """Create the backend named by ``config.indexer.type``.

        Args:
            config: Configuration object
            classifier: Optional language classifier shared with the caller

        Returns:
            ElasticSearchIndexer or TantivyIndexer instance (not yet initialized)

        Raises:
            ValueError: If the backend type is not supported
        """
        settings = config.indexer
        max_file_size = config.indexing.max_file_size

        if settings.type == "elasticsearch":
            from .elasticsearch import ElasticSearchIndexer

            logger.info(f"Creating ElasticSearchIndexer for {settings.url}")
            return ElasticSearchIndexer(
                url=settings.url,
                index_name=settings.index_name,
                timeout=settings.timeout,
                username=settings.username,
                password=settings.password,
                fuzziness=settings.fuzziness,
                language_facet_size=settings.language_facet_size,
                facets_ignore_language_filter=settings.facets_ignore_language_filter,
                max_file_size=max_file_size,
                classifier=classifier,
            )
        elif settings.type == "tantivy":
            from .tantivy import TantivyIndexer

            logger.info(f"Creating TantivyIndexer at {settings.index_dir}")
            return TantivyIndexer(
                index_dir=settings.index_dir,
                edit_distance=settings.edit_distance,
                language_facet_size=settings.language_facet_size,
                facets_ignore_language_filter=settings.facets_ignore_language_filter,
                max_file_size=max_file_size,
                classifier=classifier,
            )
        else:
            raise ValueError(f"Unsupported indexer type: {settings.type}")
