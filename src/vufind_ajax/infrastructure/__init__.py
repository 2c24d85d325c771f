"""Infrastructure layer.

This package provides adapters for external systems: persistence (PostgreSQL,
Redis), the ILS gateway, the Solr search backend, link resolvers, Relais,
template rendering and translation.
"""
