"""Search backend adapters."""

from .solr_client import SolrClient

__all__ = ["SolrClient"]
