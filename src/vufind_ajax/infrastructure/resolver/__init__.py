"""DOI and OpenURL link resolvers."""

from .doi import DoiLinkerPluginManager, build_doi_linker_manager
from .openurl import ResolverConnection

__all__ = ["DoiLinkerPluginManager", "ResolverConnection", "build_doi_linker_manager"]
