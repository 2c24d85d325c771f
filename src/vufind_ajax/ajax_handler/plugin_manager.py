"""Registry resolving the AJAX method parameter to a handler instance.

Aliases map the lowerCamel method names used by the browser to canonical
handler names; factories build a handler from the per-request
HandlerContext.
"""

import logging
from typing import Any, Callable, Dict, Optional

from vufind_ajax.ajax_handler import (
    comments,
    item_status,
    lists,
    notifications,
    record,
    relais,
    requests,
    resolvers,
    search,
    system,
    tags,
    user_account,
)
from vufind_ajax.ajax_handler.base import AjaxHandler
from vufind_ajax.ajax_handler.context import HandlerContext
from vufind_ajax.exception.api_exceptions import (
    ConfigurationError,
    UnknownAjaxMethodError,
)
from vufind_ajax.repository.session_store_repository import CatalogSession
from vufind_ajax.service.tag_parser import TagParser

logger = logging.getLogger(__name__)

HandlerFactory = Callable[[HandlerContext], AjaxHandler]


def _require(ctx: HandlerContext, name: str) -> Any:
    """A context service the handler cannot work without."""
    value = getattr(ctx, name)
    if value is None:
        raise ConfigurationError(f"Service '{name}' is not configured")
    return value


def _session_id(session: Optional[CatalogSession]) -> Optional[str]:
    return session.session_id if session is not None else None


def _item_statuses(ctx: HandlerContext) -> AjaxHandler:
    return item_status.GetItemStatuses(
        ctx.session_settings,
        ctx.settings.item_status,
        _require(ctx, "ils"),
        ctx.renderer,
        _require(ctx, "hold_logic"),
        _require(ctx, "availability_manager"),
        ctx.translator,
    )


def _search_results(ctx: HandlerContext) -> AjaxHandler:
    return search.GetSearchResults(
        ctx.session_settings,
        _require(ctx, "search_service"),
        ctx.renderer,
        _require(ctx, "record_loader"),
        ctx.user,
        _session_id(ctx.session),
        _require(ctx, "search_repo"),
        ctx.translator,
    )


def _side_facets(ctx: HandlerContext) -> AjaxHandler:
    return search.GetSideFacets(
        ctx.session_settings,
        _require(ctx, "search_service"),
        _require(ctx, "facet_helper"),
        ctx.settings.facets,
        ctx.renderer,
    )


def _facet_data(ctx: HandlerContext) -> AjaxHandler:
    return search.GetFacetData(
        ctx.session_settings,
        _require(ctx, "search_service"),
        _require(ctx, "facet_helper"),
        ctx.settings.facets,
    )


def _vis_data(ctx: HandlerContext) -> AjaxHandler:
    return search.GetVisData(
        ctx.session_settings, _require(ctx, "search_service"), ctx.settings.facets
    )


def _ac_suggestions(ctx: HandlerContext) -> AjaxHandler:
    return search.GetACSuggestions(ctx.session_settings, _require(ctx, "autocomplete"))


def _comment_record(ctx: HandlerContext) -> AjaxHandler:
    return comments.CommentRecord(
        _require(ctx, "resource_repo"),
        _require(ctx, "comments_repo"),
        _require(ctx, "record_loader"),
        ctx.captcha,
        ctx.user,
        ctx.settings.social.comments_enabled,
        ctx.translator,
        ctx.client_ip,
    )


def _delete_comment(ctx: HandlerContext) -> AjaxHandler:
    return comments.DeleteRecordComment(
        _require(ctx, "comments_repo"),
        ctx.user,
        ctx.settings.social.comments_enabled,
        ctx.translator,
    )


def _comments_html(ctx: HandlerContext) -> AjaxHandler:
    return comments.GetRecordCommentsAsHTML(
        _require(ctx, "comments_repo"),
        _require(ctx, "record_loader"),
        ctx.renderer,
        ctx.user,
        ctx.session,
    )


def _inappropriate_comment(ctx: HandlerContext) -> AjaxHandler:
    return comments.InappropriateComment(
        _require(ctx, "comments_repo"), ctx.session, ctx.user, ctx.translator
    )


def _tag_record(ctx: HandlerContext) -> AjaxHandler:
    return tags.TagRecord(
        _require(ctx, "resource_repo"),
        _require(ctx, "tags_repo"),
        _require(ctx, "record_loader"),
        TagParser(ctx.settings.social.max_tag_length),
        ctx.user,
        ctx.settings.social.tags_enabled,
        ctx.translator,
    )


def _record_tags(ctx: HandlerContext) -> AjaxHandler:
    return tags.GetRecordTags(_require(ctx, "tags_repo"), ctx.user)


def _save_statuses(ctx: HandlerContext) -> AjaxHandler:
    return lists.GetSaveStatuses(
        ctx.session_settings,
        _require(ctx, "user_list_repo"),
        ctx.renderer,
        ctx.user,
        ctx.translator,
    )


def _add_to_list(ctx: HandlerContext) -> AjaxHandler:
    return lists.AddToList(
        _require(ctx, "user_list_repo"),
        _require(ctx, "resource_repo"),
        _require(ctx, "record_loader"),
        ctx.user,
        ctx.settings.social.lists_enabled,
        ctx.translator,
    )


def _edit_list(ctx: HandlerContext) -> AjaxHandler:
    return lists.EditList(
        _require(ctx, "user_list_repo"),
        ctx.user,
        ctx.settings.social.lists_enabled,
        ctx.translator,
    )


def _edit_list_resource(ctx: HandlerContext) -> AjaxHandler:
    return lists.EditListResource(
        _require(ctx, "user_list_repo"),
        ctx.user,
        ctx.settings.social.lists_enabled,
        ctx.translator,
    )


def _my_lists(ctx: HandlerContext) -> AjaxHandler:
    return lists.GetMyLists(
        _require(ctx, "user_list_repo"),
        ctx.renderer,
        ctx.user,
        ctx.settings.social.lists_enabled,
        ctx.translator,
    )


def _account_action(handler_class: type) -> HandlerFactory:
    def factory(ctx: HandlerContext) -> AjaxHandler:
        return handler_class(
            ctx.session_settings,
            _require(ctx, "ils"),
            _require(ctx, "ils_authenticator"),
            ctx.translator,
        )

    return factory


def _user_fines(ctx: HandlerContext) -> AjaxHandler:
    return user_account.GetUserFines(
        ctx.session_settings,
        _require(ctx, "ils"),
        _require(ctx, "ils_authenticator"),
        ctx.settings.currency,
        ctx.translator,
    )


def _patron_request_action(handler_class: type) -> HandlerFactory:
    def factory(ctx: HandlerContext) -> AjaxHandler:
        return handler_class(
            ctx.session_settings,
            _require(ctx, "ils"),
            _require(ctx, "ils_authenticator"),
            ctx.user,
            ctx.translator,
        )

    return factory


def _doi_lookup(ctx: HandlerContext) -> AjaxHandler:
    return resolvers.DoiLookup(
        _require(ctx, "doi_linkers"), ctx.settings.doi, ctx.renderer
    )


def _resolver_links(ctx: HandlerContext) -> AjaxHandler:
    return resolvers.GetResolverLinks(
        ctx.session_settings,
        ctx.settings.openurl,
        _require(ctx, "http_client"),
        ctx.renderer,
        ctx.translator,
    )


def _relais_action(handler_class: type) -> HandlerFactory:
    def factory(ctx: HandlerContext) -> AjaxHandler:
        return handler_class(ctx.relais, ctx.user, ctx.translator)

    return factory


def _record_cover(ctx: HandlerContext) -> AjaxHandler:
    return record.GetRecordCover(_require(ctx, "record_loader"), ctx.renderer)


def _record_versions(ctx: HandlerContext) -> AjaxHandler:
    return record.GetRecordVersions(
        ctx.session_settings,
        _require(ctx, "record_loader"),
        _require(ctx, "search_service"),
        ctx.renderer,
    )


def _system_status(ctx: HandlerContext) -> AjaxHandler:
    return system.SystemStatus(
        ctx.session_settings,
        _require(ctx, "solr"),
        _require(ctx, "postgres"),
        ctx.session_store,
        ctx.session,
        ctx.settings.health_check_file,
    )


def _keep_alive(ctx: HandlerContext) -> AjaxHandler:
    return system.KeepAlive(ctx.session)


def _ils_status(ctx: HandlerContext) -> AjaxHandler:
    return system.GetIlsStatus(ctx.session_settings, _require(ctx, "ils"), ctx.renderer)


def _notifications_visibility(ctx: HandlerContext) -> AjaxHandler:
    return notifications.NotificationsVisibility(
        _require(ctx, "notifications_repo"),
        ctx.user,
        ctx.settings.notifications.enabled,
        ctx.translator,
    )


def _close_broadcast(ctx: HandlerContext) -> AjaxHandler:
    return notifications.CloseBroadcast(ctx.session)


class AjaxHandlerPluginManager:
    """Handler registry.

    Attributes:
        aliases: AJAX method name → canonical handler name
        factories: Canonical handler name → factory(HandlerContext)
    """

    def __init__(self) -> None:
        self.aliases: Dict[str, str] = {}
        self.factories: Dict[str, HandlerFactory] = {}
        self._initialize_registry()

    def _initialize_registry(self) -> None:
        """Register the built-in handlers."""
        builtins = {
            "GetItemStatuses": _item_statuses,
            "GetSearchResults": _search_results,
            "GetSideFacets": _side_facets,
            "GetFacetData": _facet_data,
            "GetVisData": _vis_data,
            "GetACSuggestions": _ac_suggestions,
            "CommentRecord": _comment_record,
            "DeleteRecordComment": _delete_comment,
            "GetRecordCommentsAsHTML": _comments_html,
            "InappropriateComment": _inappropriate_comment,
            "TagRecord": _tag_record,
            "GetRecordTags": _record_tags,
            "GetSaveStatuses": _save_statuses,
            "AddToList": _add_to_list,
            "EditList": _edit_list,
            "EditListResource": _edit_list_resource,
            "GetMyLists": _my_lists,
            "GetUserFines": _user_fines,
            "GetUserHolds": _account_action(user_account.GetUserHolds),
            "GetUserILLRequests": _account_action(user_account.GetUserILLRequests),
            "GetUserStorageRetrievalRequests": _account_action(
                user_account.GetUserStorageRetrievalRequests
            ),
            "GetUserTransactions": _account_action(user_account.GetUserTransactions),
            "CheckRequestIsValid": _patron_request_action(
                requests.CheckRequestIsValid
            ),
            "GetLibraryPickupLocations": _patron_request_action(
                requests.GetLibraryPickupLocations
            ),
            "GetRequestGroupPickupLocations": _patron_request_action(
                requests.GetRequestGroupPickupLocations
            ),
            "ChangePickupLocation": _patron_request_action(
                requests.ChangePickupLocation
            ),
            "DoiLookup": _doi_lookup,
            "GetResolverLinks": _resolver_links,
            "RelaisAvailability": _relais_action(relais.RelaisAvailability),
            "RelaisInfo": _relais_action(relais.RelaisInfo),
            "RelaisOrder": _relais_action(relais.RelaisOrder),
            "GetRecordCover": _record_cover,
            "GetRecordVersions": _record_versions,
            "SystemStatus": _system_status,
            "KeepAlive": _keep_alive,
            "GetIlsStatus": _ils_status,
            "NotificationsVisibility": _notifications_visibility,
            "CloseBroadcast": _close_broadcast,
        }
        for name, factory in builtins.items():
            self.register(name, factory)

    @staticmethod
    def default_alias(name: str) -> str:
        """lowerCamel method name for a canonical handler name."""
        return name[0].lower() + name[1:]

    def register(
        self, name: str, factory: HandlerFactory, alias: Optional[str] = None
    ) -> None:
        self.factories[name] = factory
        self.aliases[alias or self.default_alias(name)] = name

    def resolve(self, name: str) -> Optional[str]:
        """Canonical handler name for an alias or canonical name."""
        if name in self.aliases:
            return self.aliases[name]
        if name in self.factories:
            return name
        return None

    def has(self, name: str) -> bool:
        return self.resolve(name) is not None

    def get(self, name: str, context: HandlerContext) -> AjaxHandler:
        """Build the handler for an AJAX method.

        Raises:
            UnknownAjaxMethodError: If no handler is registered under name
            ConfigurationError: If a service the handler needs is missing
        """
        canonical = self.resolve(name or "")
        if canonical is None:
            raise UnknownAjaxMethodError(name)
        logger.debug(f"Dispatching AJAX method {name} to {canonical}")
        return self.factories[canonical](context)
