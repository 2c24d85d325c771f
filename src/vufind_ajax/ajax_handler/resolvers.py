"""Link resolver handlers: DOI links and OpenURL resolver menus."""

import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode

import httpx

from vufind_ajax.ajax_handler.base import AbstractBase, ResponseTuple
from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.config.app_settings import DoiConfig, OpenUrlConfig
from vufind_ajax.exception.api_exceptions import ConfigurationError, ResolverError
from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.infrastructure.rendering.renderer import TemplateRenderer
from vufind_ajax.infrastructure.resolver import DoiLinkerPluginManager
from vufind_ajax.infrastructure.resolver.doi import DoiLinker
from vufind_ajax.infrastructure.resolver.openurl import ResolverConnection
from vufind_ajax.service.session_settings import SessionSettings

logger = logging.getLogger(__name__)


class DoiLookup(AbstractBase):
    """Full-text links for DOIs from the configured linkers.

    In "first" mode linkers are consulted in order until every DOI has links
    and a DOI keeps the links of the first linker that knew it. In "merge"
    mode every linker is consulted and the links are concatenated.
    """

    def __init__(
        self,
        linkers: DoiLinkerPluginManager,
        config: DoiConfig,
        renderer: TemplateRenderer,
    ):
        self.config = config
        self.renderer = renderer
        self.handlers: List[DoiLinker] = []
        for name in config.resolvers:
            if linkers.has(name):
                self.handlers.append(linkers.get(name))
            else:
                logger.warning(f"Unknown DOI linker configured: {name}")
        self.multi_mode = (config.multi_resolver_mode or "first").lower()

    def process_icon(self, icon: Optional[str]) -> Optional[str]:
        if icon and self.config.proxy_icons:
            return self.renderer.server_url("cover-show") + "?" + urlencode(
                {"proxy": icon}
            )
        return icon

    def format_link(self, link: Dict[str, Any]) -> Dict[str, Any]:
        formatted = dict(link)
        formatted["newWindow"] = self.config.new_window
        if "icon" in link:
            formatted["icon"] = self.process_icon(link["icon"])
        if "localIcon" in link:
            formatted["localIcon"] = str(self.renderer.icon(link["localIcon"]))
        return formatted

    async def handle_request(self, params: Params) -> ResponseTuple:
        dois = params.from_query("doi", [])
        if isinstance(dois, str):
            dois = [dois]

        response: Dict[str, List[Dict[str, Any]]] = {}
        for handler in self.handlers:
            try:
                found = await handler.get_links(dois)
            except ResolverError as e:
                logger.error(f"DOI lookup failed: {e.message}", exc_info=True)
                continue

            for doi, links in found.items():
                if self.multi_mode == "first" and doi in response:
                    continue
                response.setdefault(doi, []).extend(
                    self.format_link(link) for link in links
                )

            if self.multi_mode == "first" and all(doi in response for doi in dois):
                break

        return self.format_response(response)


def categorize_links(
    links: Sequence[Dict[str, Any]], translator: Optional[Translator] = None
) -> Dict[str, List[Dict[str, Any]]]:
    """Sort resolver links into electronic, print and services."""
    categories: Dict[str, List[Dict[str, Any]]] = {
        "electronic": [],
        "print": [],
        "services": [],
    }
    for link in links:
        service_type = link.get("service_type", "")
        if service_type == "getHolding":
            categories["print"].append(link)
        elif service_type == "getWebService":
            categories["services"].append(link)
        else:
            if service_type == "getDOI":
                link = dict(link, coverage="")
                link["title"] = (
                    translator.translate("Get full text")
                    if translator is not None
                    else "Get full text"
                )
            categories["electronic"].append(link)
    return categories


class GetResolverLinks(AbstractBase):
    """OpenURL resolver menu for a record."""

    def __init__(
        self,
        session_settings: SessionSettings,
        config: OpenUrlConfig,
        http_client: httpx.AsyncClient,
        renderer: TemplateRenderer,
        translator: Optional[Translator] = None,
    ):
        self.session_settings = session_settings
        self.config = config
        self.http_client = http_client
        self.renderer = renderer
        self.translator = translator

    async def handle_request(self, params: Params) -> ResponseTuple:
        self.disable_session_writes()
        openurl = params.from_query("openurl", "")
        search_class_id = params.from_query("searchClassId", "")

        resolver_type = self.config.resolver or "other"
        try:
            resolver = ResolverConnection.create(
                resolver_type, self.config.url, self.http_client
            )
        except ConfigurationError as e:
            logger.error(f"OpenURL resolver unavailable: {e.message}")
            return self.format_response(
                self.translate(f"Could not load driver for {resolver_type}"),
                self.STATUS_HTTP_ERROR,
            )

        try:
            links = await resolver.fetch_links(openurl)
        except ResolverError as e:
            logger.error(f"OpenURL resolver failed: {e.message}", exc_info=True)
            return self.format_response(
                self.translate("An error has occurred"), self.STATUS_HTTP_ERROR
            )

        context = categorize_links(links, self.translator)
        context.update(
            {
                "openUrlBase": self.config.url or False,
                "openUrl": openurl,
                "searchClassId": search_class_id,
                "moreOptionsLink": resolver.get_resolver_url(openurl),
                "windowSettings": self.config.window_settings,
            }
        )
        html = await self.renderer.render("ajax/resolverLinks", context)
        return self.format_response({"html": html})
