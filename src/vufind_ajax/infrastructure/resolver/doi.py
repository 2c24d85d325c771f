"""DOI linkers: look up full-text links for lists of DOIs.

Every linker answers get_links(dois) with a mapping of DOI to link dicts
({"link", "label", optional "icon", optional "localIcon"}). DOIs the linker
knows nothing about are simply absent from the mapping.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Sequence
from urllib.parse import quote

import httpx

from vufind_ajax.exception.api_exceptions import ConfigurationError, ResolverError

logger = logging.getLogger(__name__)

DoiLinks = Dict[str, List[Dict[str, str]]]


class DoiLinker(ABC):
    """Base class for DOI linkers."""

    @abstractmethod
    async def get_links(self, dois: Sequence[str]) -> DoiLinks:
        """Look up links for the given DOIs."""


class UnpaywallLinker(DoiLinker):
    """Open access links from the Unpaywall API."""

    API_URL = "https://api.unpaywall.org/v2"

    def __init__(self, http_client: httpx.AsyncClient, email: str):
        if not email:
            raise ConfigurationError("Unpaywall requires an email address")
        self._client = http_client
        self.email = email

    async def get_links(self, dois: Sequence[str]) -> DoiLinks:
        links: DoiLinks = {}
        for doi in dois:
            url = f"{self.API_URL}/{quote(doi, safe='/')}"
            try:
                response = await self._client.get(url, params={"email": self.email})
            except httpx.HTTPError as e:
                raise ResolverError(f"Unpaywall lookup failed: {e}") from e
            if response.status_code == 404:
                continue
            if response.status_code != 200:
                raise ResolverError(
                    f"Unpaywall lookup failed with HTTP {response.status_code}"
                )

            location = response.json().get("best_oa_location") or {}
            if location.get("url_for_pdf"):
                links[doi] = [
                    {"link": location["url_for_pdf"], "label": "PDF Full Text"}
                ]
            elif location.get("url"):
                links[doi] = [{"link": location["url"], "label": "online_resources"}]
        return links


class DemoDoiLinker(DoiLinker):
    """Fake linker for development: one link per DOI."""

    async def get_links(self, dois: Sequence[str]) -> DoiLinks:
        return {
            doi: [
                {
                    "link": f"https://doi.org/{doi}",
                    "label": "Demonstrating DOI link for " + doi,
                    "localIcon": "external-link",
                }
            ]
            for doi in dois
        }


class DoiLinkerPluginManager:
    """Registry of DOI linker factories keyed by configured resolver name."""

    def __init__(self) -> None:
        self._factories: Dict[str, Callable[[], DoiLinker]] = {}

    def register(self, name: str, factory: Callable[[], DoiLinker]) -> None:
        self._factories[name.lower()] = factory

    def has(self, name: str) -> bool:
        return name.lower() in self._factories

    def get(self, name: str) -> DoiLinker:
        try:
            factory = self._factories[name.lower()]
        except KeyError:
            raise ConfigurationError(f"Unknown DOI linker: {name}")
        return factory()


def build_doi_linker_manager(
    http_client: httpx.AsyncClient, unpaywall_email: str = ""
) -> DoiLinkerPluginManager:
    manager = DoiLinkerPluginManager()
    manager.register("unpaywall", lambda: UnpaywallLinker(http_client, unpaywall_email))
    manager.register("demo", DemoDoiLinker)
    return manager
