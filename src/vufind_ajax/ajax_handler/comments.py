"""Record comment handlers."""

import logging
from typing import Optional

from vufind_ajax.ajax_handler.base import AbstractBase, ResponseTuple
from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.constants import DEFAULT_SEARCH_BACKEND, SESSION_INAPPROPRIATE_COMMENTS
from vufind_ajax.infrastructure.i18n.translator import Translator
from vufind_ajax.infrastructure.persistence.postgresql.models import User
from vufind_ajax.infrastructure.rendering.renderer import TemplateRenderer
from vufind_ajax.repository.comments_repository import CommentsRepository
from vufind_ajax.repository.resource_repository import ResourceRepository
from vufind_ajax.repository.session_store_repository import CatalogSession
from vufind_ajax.service.captcha import CaptchaVerifier
from vufind_ajax.service.record_loader import RecordLoader

logger = logging.getLogger(__name__)

CAPTCHA_FORM = "user_comments"


def _as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class CommentRecord(AbstractBase):
    """Add a comment, and optionally a rating, to a record."""

    def __init__(
        self,
        resource_repo: ResourceRepository,
        comments_repo: CommentsRepository,
        record_loader: RecordLoader,
        captcha: Optional[CaptchaVerifier],
        user: Optional[User],
        enabled: bool = True,
        translator: Optional[Translator] = None,
        client_ip: Optional[str] = None,
    ):
        self.resource_repo = resource_repo
        self.comments_repo = comments_repo
        self.record_loader = record_loader
        self.captcha = captcha
        self.user = user
        self.enabled = enabled
        self.translator = translator
        self.client_ip = client_ip

    async def handle_request(self, params: Params) -> ResponseTuple:
        if not self.enabled:
            return self.format_response(
                self.translate("Comments disabled"), self.STATUS_HTTP_FORBIDDEN
            )
        if self.user is None:
            return self.need_auth_response()

        record_id = params.from_post("id")
        source = params.from_post("source", DEFAULT_SEARCH_BACKEND)
        comment = params.from_post("comment")
        if not record_id or not comment:
            return self.format_response(
                self.translate("bulk_error_missing"), self.STATUS_HTTP_BAD_REQUEST
            )

        rating = params.from_post("rating")
        if rating not in (None, ""):
            rating = _as_int(rating)
            if rating is None or not 0 <= rating <= 100:
                return self.format_response(
                    self.translate("error_inconsistent_parameters"),
                    self.STATUS_HTTP_BAD_REQUEST,
                )
        else:
            rating = None

        if self.captcha is not None and not await self.captcha.verify(
            CAPTCHA_FORM, params.from_post("g-recaptcha-response"), self.client_ip
        ):
            return self.format_response(
                self.translate("captcha_not_passed"), self.STATUS_HTTP_FORBIDDEN
            )

        record = await self.record_loader.load(record_id, source)
        resource = await self.resource_repo.find_or_create(
            record.id, source, record.title
        )
        comment_id = await self.comments_repo.add(self.user.id, resource.id, comment)
        if rating is not None:
            await self.resource_repo.add_or_update_rating(
                resource.id, self.user.id, rating
            )
        logger.info(f"User {self.user.id} commented on {source}|{record_id}")
        return self.format_response({"id": comment_id})


class DeleteRecordComment(AbstractBase):
    """Delete a comment owned by the current user."""

    def __init__(
        self,
        comments_repo: CommentsRepository,
        user: Optional[User],
        enabled: bool = True,
        translator: Optional[Translator] = None,
    ):
        self.comments_repo = comments_repo
        self.user = user
        self.enabled = enabled
        self.translator = translator

    async def handle_request(self, params: Params) -> ResponseTuple:
        if not self.enabled:
            return self.format_response(
                self.translate("Comments disabled"), self.STATUS_HTTP_FORBIDDEN
            )
        if self.user is None:
            return self.need_auth_response()

        comment_id = _as_int(params.from_query("id"))
        if comment_id is None:
            return self.format_response(
                self.translate("bulk_error_missing"), self.STATUS_HTTP_BAD_REQUEST
            )
        if not await self.comments_repo.delete_if_owner(comment_id, self.user.id):
            return self.format_response(
                self.translate("edit_list_fail"), self.STATUS_HTTP_FORBIDDEN
            )
        return self.format_response(True)


class GetRecordCommentsAsHTML(AbstractBase):
    """Rendered comment list of a record.

    Comments the current visitor has reported as inappropriate are hidden.
    """

    def __init__(
        self,
        comments_repo: CommentsRepository,
        record_loader: RecordLoader,
        renderer: TemplateRenderer,
        user: Optional[User],
        session: Optional[CatalogSession],
    ):
        self.comments_repo = comments_repo
        self.record_loader = record_loader
        self.renderer = renderer
        self.user = user
        self.session = session

    async def hidden_comment_ids(self) -> set:
        hidden = set()
        if self.session is not None:
            hidden.update(self.session.get(SESSION_INAPPROPRIATE_COMMENTS, []))
        if self.user is not None:
            hidden.update(
                await self.comments_repo.get_inappropriate_comment_ids(self.user.id)
            )
        return hidden

    async def handle_request(self, params: Params) -> ResponseTuple:
        record_id = params.from_query("id")
        source = params.from_query("source", DEFAULT_SEARCH_BACKEND)
        if not record_id:
            return self.format_response(
                "Missing parameter 'id'", self.STATUS_HTTP_BAD_REQUEST
            )
        record = await self.record_loader.load(record_id, source)

        hidden = await self.hidden_comment_ids()
        comments = [
            {"comment": comment, "username": username}
            for comment, username in await self.comments_repo.get_for_resource(
                record.id, source
            )
            if comment.id not in hidden
        ]
        html = await self.renderer.render(
            "record/comments-list",
            {"driver": record, "comments": comments, "user": self.user},
        )
        return self.format_response({"html": html})


class InappropriateComment(AbstractBase):
    """Report a comment as inappropriate.

    Reports by logged-in users are stored in the database; every report is
    also remembered in the session so the comment is hidden right away.
    """

    def __init__(
        self,
        comments_repo: CommentsRepository,
        session: Optional[CatalogSession],
        user: Optional[User],
        translator: Optional[Translator] = None,
    ):
        self.comments_repo = comments_repo
        self.session = session
        self.user = user
        self.translator = translator

    async def handle_request(self, params: Params) -> ResponseTuple:
        comment_id = _as_int(params.from_post("comment"))
        reason = params.from_post("reason")
        if comment_id is None or not reason:
            return self.format_response(
                self.translate("bulk_error_missing"), self.STATUS_HTTP_BAD_REQUEST
            )

        if self.user is not None:
            await self.comments_repo.mark_inappropriate(
                self.user.id, comment_id, reason
            )
        if self.session is not None:
            self.session.append_unique(SESSION_INAPPROPRIATE_COMMENTS, comment_id)
        return self.format_response(True)
