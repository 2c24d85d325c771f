"""Record page fragments: cover images and other versions."""

import logging
from typing import Optional

from vufind_ajax.ajax_handler.base import AbstractBase, ResponseTuple
from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.constants import DEFAULT_SEARCH_BACKEND
from vufind_ajax.exception.api_exceptions import RecordMissingError
from vufind_ajax.infrastructure.rendering.renderer import TemplateRenderer
from vufind_ajax.service.record_loader import RecordLoader
from vufind_ajax.service.search_service import SearchService
from vufind_ajax.service.session_settings import SessionSettings

logger = logging.getLogger(__name__)

COVER_SIZES = ("small", "medium", "large")


class GetRecordCover(AbstractBase):
    """Cover image URL of a record, with the HTML to show it.

    Records without a cover answer 404 with the replacement HTML.
    """

    def __init__(self, record_loader: RecordLoader, renderer: TemplateRenderer):
        self.record_loader = record_loader
        self.renderer = renderer

    async def handle_request(self, params: Params) -> ResponseTuple:
        record_id = params.from_query("recordId")
        source = params.from_query("source", DEFAULT_SEARCH_BACKEND)
        size = params.from_query("size", "small")
        if not record_id:
            return self.format_response(
                "Missing parameter 'recordId'", self.STATUS_HTTP_BAD_REQUEST
            )
        if size not in COVER_SIZES:
            return self.format_response(
                f"Not valid size: {size}", self.STATUS_HTTP_BAD_REQUEST
            )

        try:
            record = await self.record_loader.load(record_id, source)
        except RecordMissingError as e:
            return self.format_response(
                f"Could not load record: {e.message}", self.STATUS_HTTP_NOT_FOUND
            )

        url = record.cover_url(size)
        html = await self.renderer.render(
            "ajax/cover", {"driver": record, "url": url, "size": size}
        )
        if url is None:
            return self.format_response(
                {"url": False, "size": size, "html": html}, self.STATUS_HTTP_NOT_FOUND
            )
        return self.format_response({"url": url, "size": size, "html": html})


class GetRecordVersions(AbstractBase):
    """Link to other versions (editions sharing a work key) of a record."""

    def __init__(
        self,
        session_settings: SessionSettings,
        record_loader: RecordLoader,
        search_service: SearchService,
        renderer: TemplateRenderer,
    ):
        self.session_settings = session_settings
        self.record_loader = record_loader
        self.search_service = search_service
        self.renderer = renderer

    async def handle_request(self, params: Params) -> ResponseTuple:
        self.disable_session_writes()
        record_id = params.from_either("id")
        source = params.from_either("source", DEFAULT_SEARCH_BACKEND)
        search_id: Optional[str] = params.from_either("sid")
        if not record_id:
            return self.format_response("")

        try:
            record = await self.record_loader.load(record_id, source)
        except RecordMissingError:
            return self.format_response("")

        count = await self.search_service.count_versions(record)
        if not count:
            return self.format_response("")

        html = await self.renderer.render(
            "record/versions-link",
            {
                "driver": record,
                "count": count,
                "searchClassId": source,
                "searchId": search_id,
                "workKeys": record.work_keys,
            },
        )
        return self.format_response({"html": html})
