"""Jinja2 renderer for the HTML fragments embedded in AJAX responses.

Templates live in the package templates directory and are addressed by their
path without extension, for example "ajax/status" for ajax/status.html.
Every template gets translate/icon/url/server_url helpers as globals.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup, escape

from vufind_ajax.exception.api_exceptions import ConfigurationError
from vufind_ajax.infrastructure.i18n.translator import Translator

logger = logging.getLogger(__name__)

ROUTES: Dict[str, str] = {
    "home": "/",
    "cover-show": "/Cover/Show",
    "record": "/Record/{id}",
    "search-results": "/Search/Results",
    "search-versions": "/Search/Versions",
    "myresearch-mylist": "/MyResearch/MyList/{id}",
    "myresearch-home": "/MyResearch/Home",
}


class TemplateRenderer:
    """Render named templates with catalog view helpers.

    Attributes:
        templates_dir: Directory holding *.html templates
        server_url_base: Absolute base URL used by server_url()
        translator: Translator exposed to templates
    """

    def __init__(
        self,
        templates_dir: Path,
        translator: Translator,
        server_url_base: str = "",
    ):
        self.templates_dir = Path(templates_dir)
        self.translator = translator
        self.server_url_base = server_url_base.rstrip("/")

        logger.info(f"Initializing Jinja2 renderer: {self.templates_dir}")

        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            enable_async=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.globals.update(
            translate=self.translate,
            icon=self.icon,
            url=self.url,
            server_url=self.server_url,
            localized_number=self.localized_number,
        )

    def translate(
        self,
        key: Any,
        params: Optional[Mapping[str, Any]] = None,
        default: Optional[str] = None,
    ) -> str:
        return self.translator.translate(key, params, default)

    def url(
        self,
        route: str,
        params: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Build a site-relative URL for a named route."""
        try:
            path = ROUTES[route].format(**(params or {}))
        except KeyError:
            raise ConfigurationError(f"Unknown route: {route}")
        if query:
            path += "?" + urlencode(query, doseq=True)
        return path

    def server_url(
        self, route: str, params: Optional[Mapping[str, Any]] = None
    ) -> str:
        return self.server_url_base + self.url(route, params)

    @staticmethod
    def icon(name: str, css_class: str = "") -> Markup:
        classes = f"icon icon--{name}"
        if css_class:
            classes += f" {css_class}"
        return Markup(f'<span class="{escape(classes)}" aria-hidden="true"></span>')

    @staticmethod
    def localized_number(value: float, decimals: int = 0) -> str:
        return f"{value:,.{decimals}f}"

    def has(self, template: str) -> bool:
        return (self.templates_dir / f"{template}.html").exists()

    async def render(
        self, template: str, context: Optional[Mapping[str, Any]] = None
    ) -> str:
        """Render a template to a string.

        Args:
            template: Template name without extension
            context: Template variables

        Returns:
            Rendered HTML

        Raises:
            ConfigurationError: If the template does not exist
        """
        filename = f"{template}.html"
        try:
            compiled = self.env.get_template(filename)
        except TemplateNotFound:
            logger.error(f"Template not found: {filename}")
            raise ConfigurationError(f"Template not found: {template}")
        return await compiled.render_async(**dict(context or {}))
