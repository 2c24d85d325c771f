"""Record tag handlers."""

from typing import Optional

from vufind_ajax.ajax_handler.base import AbstractBase, ResponseTuple
from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.constants import DEFAULT_SEARCH_BACKEND
from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.infrastructure.persistence.postgresql.models import User
from vufind_ajax.repository.resource_repository import ResourceRepository
from vufind_ajax.repository.tags_repository import TagsRepository
from vufind_ajax.service.record_loader import RecordLoader
from vufind_ajax.service.tag_parser import TagParser


class TagRecord(AbstractBase):
    """Add tags to a record, or remove them when remove=true."""

    def __init__(
        self,
        resource_repo: ResourceRepository,
        tags_repo: TagsRepository,
        record_loader: RecordLoader,
        tag_parser: TagParser,
        user: Optional[User],
        enabled: bool = True,
        translator: Optional[Translator] = None,
    ):
        self.resource_repo = resource_repo
        self.tags_repo = tags_repo
        self.record_loader = record_loader
        self.tag_parser = tag_parser
        self.user = user
        self.enabled = enabled
        self.translator = translator

    async def handle_request(self, params: Params) -> ResponseTuple:
        if not self.enabled:
            return self.format_response(
                self.translate("Tags disabled"), self.STATUS_HTTP_FORBIDDEN
            )
        if self.user is None:
            return self.need_auth_response()

        record_id = params.from_post("id")
        source = params.from_post("source", DEFAULT_SEARCH_BACKEND)
        if not record_id:
            return self.format_response(
                self.translate("bulk_error_missing"), self.STATUS_HTTP_BAD_REQUEST
            )

        tags = self.tag_parser.parse(params.from_post("tag", ""))
        # An empty submission changes nothing
        if tags:
            if params.from_post("remove", "false") == "false":
                record = await self.record_loader.load(record_id, source)
                resource = await self.resource_repo.find_or_create(
                    record.id, source, record.title
                )
                for tag in tags:
                    await self.tags_repo.add_tag(resource.id, tag, self.user.id)
            else:
                resource = await self.resource_repo.find(record_id, source)
                if resource is not None:
                    for tag in tags:
                        await self.tags_repo.delete_tag(
                            resource.id, tag, self.user.id
                        )

        return self.format_response(self.translate("Done"))


class GetRecordTags(AbstractBase):
    """Tags on a record with their counts and whether the user applied them."""

    def __init__(self, tags_repo: TagsRepository, user: Optional[User]):
        self.tags_repo = tags_repo
        self.user = user

    async def handle_request(self, params: Params) -> ResponseTuple:
        record_id = params.from_query("id")
        source = params.from_query("source", DEFAULT_SEARCH_BACKEND)
        if not record_id:
            return self.format_response(
                "Missing parameter 'id'", self.STATUS_HTTP_BAD_REQUEST
            )
        tags = await self.tags_repo.get_for_resource(
            record_id, source, self.user.id if self.user is not None else None
        )
        return self.format_response({"tags": tags})
