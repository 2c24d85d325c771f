"""OpenURL link resolver drivers.

A driver fetches the resolver's answer for an OpenURL query string and parses
it into link dicts:

    {"title", "href", "service_type", "coverage", "access"}

service_type follows the SFX vocabulary: getFullTxt / getSelectedFullTxt for
electronic holdings, getHolding for print, anything else is a service.
"""

import logging
import xml.etree.ElementTree as ElementTree
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

import httpx

from vufind_ajax.exception.api_exceptions import ConfigurationError, ResolverError

logger = logging.getLogger(__name__)

ELECTRONIC_SERVICE_TYPES = ("getFullTxt", "getSelectedFullTxt")
PRINT_SERVICE_TYPES = ("getHolding",)


class ResolverDriver(ABC):
    """Base class for OpenURL resolver drivers."""

    def __init__(self, base_url: str):
        self.base_url = base_url

    def get_resolver_url(self, openurl: str) -> str:
        return f"{self.base_url}?{openurl}"

    @abstractmethod
    async def fetch_links(self, openurl: str) -> str:
        """Raw resolver answer."""

    @abstractmethod
    def parse_links(self, raw: str) -> List[Dict[str, Any]]:
        """Parse a raw answer into link dicts."""


class SfxDriver(ResolverDriver):
    """Ex Libris SFX resolver (XML multi-object response)."""

    def __init__(self, base_url: str, http_client: httpx.AsyncClient):
        super().__init__(base_url)
        self._client = http_client

    async def fetch_links(self, openurl: str) -> str:
        url = f"{self.base_url}?{openurl}&sfx.response_type=multi_obj_xml"
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ResolverError(f"SFX request failed: {e}") from e
        return response.text

    def parse_links(self, raw: str) -> List[Dict[str, Any]]:
        try:
            root = ElementTree.fromstring(raw)
        except ElementTree.ParseError as e:
            raise ResolverError(f"Invalid SFX response: {e}") from e

        links = []
        for target in root.iter("target"):
            service_type = (target.findtext("service_type") or "").strip()
            coverage = " ".join(
                (node.text or "").strip()
                for node in target.iter("coverage_statement")
                if node.text
            )
            links.append(
                {
                    "title": (target.findtext("target_public_name") or "").strip(),
                    "href": (target.findtext("target_url") or "").strip(),
                    "service_type": service_type,
                    "coverage": coverage,
                    "access": "open" if target.findtext("is_free") == "1" else "",
                }
            )
        return links


class DemoResolverDriver(ResolverDriver):
    """Fake resolver echoing the OpenURL title into three sample links."""

    async def fetch_links(self, openurl: str) -> str:
        return openurl

    def parse_links(self, raw: str) -> List[Dict[str, Any]]:
        query = parse_qs(raw)
        title = (query.get("rft.title") or query.get("rft.btitle") or ["Untitled"])[0]
        return [
            {
                "title": f"{title} (electronic)",
                "href": "https://example.org/fulltext",
                "service_type": "getFullTxt",
                "coverage": "",
                "access": "open",
            },
            {
                "title": f"{title} (print)",
                "href": "https://example.org/holding",
                "service_type": "getHolding",
                "coverage": "",
                "access": "",
            },
            {
                "title": "Ask a librarian",
                "href": "https://example.org/ask",
                "service_type": "getWebService",
                "coverage": "",
                "access": "",
            },
        ]


class ResolverConnection:
    """Resolver driver selected by name."""

    def __init__(self, driver: ResolverDriver):
        self.driver = driver

    @classmethod
    def create(
        cls, name: str, base_url: Optional[str], http_client: httpx.AsyncClient
    ) -> "ResolverConnection":
        """Build a connection for a configured driver name.

        Raises:
            ConfigurationError: For an unknown driver or a missing base URL
        """
        name = (name or "").lower()
        if name == "demo":
            return cls(DemoResolverDriver(base_url or ""))
        if not base_url:
            raise ConfigurationError("OpenURL resolver URL is not configured")
        if name == "sfx":
            return cls(SfxDriver(base_url, http_client))
        raise ConfigurationError(f"Unknown OpenURL resolver: {name}")

    def get_resolver_url(self, openurl: str) -> str:
        return self.driver.get_resolver_url(openurl)

    async def fetch_links(self, openurl: str) -> List[Dict[str, Any]]:
        raw = await self.driver.fetch_links(openurl)
        return self.driver.parse_links(raw)
