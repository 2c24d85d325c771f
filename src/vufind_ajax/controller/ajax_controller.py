"""AJAX dispatch endpoint.

GET or POST /AJAX/JSON?method=<name>&... resolves the handler registered for
`method`, runs it with the request parameters and wraps its answer into the
envelope {"data": payload, "status": "OK" | "ERROR" | "NEED_AUTH"}.
"""

import logging
from typing import Any, Dict, List, Tuple

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from vufind_ajax.ajax_handler.base import unpack_response
from vufind_ajax.ajax_handler.context import HandlerContext
from vufind_ajax.ajax_handler.params import Params
from vufind_ajax.controller.schemas.responses import AjaxResponse, ajax_response
from vufind_ajax.exception.api_exceptions import MissingParameterError
from vufind_ajax.infrastructure.ils import IlsAuthenticator
from vufind_ajax.service.session_settings import SessionSettings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/AJAX", tags=["ajax"])

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

# app.state attributes copied into every HandlerContext
SHARED_SERVICES = (
    "ils",
    "solr",
    "search_service",
    "record_loader",
    "availability_manager",
    "hold_logic",
    "facet_helper",
    "autocomplete",
    "captcha",
    "doi_linkers",
    "relais",
    "http_client",
    "postgres",
    "resource_repo",
    "comments_repo",
    "tags_repo",
    "user_list_repo",
    "search_repo",
    "notifications_repo",
    "session_store",
)


async def _form_pairs(request: Request) -> List[Tuple[str, Any]]:
    if request.method != "POST":
        return []
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(FORM_CONTENT_TYPES):
        return []
    form = await request.form()
    return list(form.multi_items())


async def build_params(request: Request) -> Params:
    """Decode query string and form body into a Params bag."""
    return Params.from_pairs(
        request.query_params.multi_items(), await _form_pairs(request)
    )


def build_context(request: Request) -> HandlerContext:
    """Collect application services and request state for handler factories."""
    state = request.app.state
    user = getattr(request.state, "user", None)
    session_settings = getattr(request.state, "session_settings", None)
    if session_settings is None:
        session_settings = SessionSettings()

    services: Dict[str, Any] = {
        name: getattr(state, name, None) for name in SHARED_SERVICES
    }
    ils = services["ils"]

    return HandlerContext(
        settings=state.app_settings,
        translator=state.translator,
        renderer=state.renderer,
        session_settings=session_settings,
        ils_authenticator=IlsAuthenticator(ils, user) if ils is not None else None,
        session=getattr(request.state, "session", None),
        user=user,
        client_ip=request.client.host if request.client else None,
        **services,
    )


async def dispatch(request: Request) -> JSONResponse:
    """Run the handler named by the `method` parameter."""
    params = await build_params(request)
    method = params.from_either("method")
    if not method:
        raise MissingParameterError("method")

    plugin_manager = request.app.state.ajax_handlers
    handler = plugin_manager.get(method, build_context(request))
    payload, internal_status, http_status = unpack_response(
        await handler.handle_request(params)
    )

    if http_status >= 500:
        logger.warning(f"AJAX method {method} answered {http_status}: {payload}")
    return JSONResponse(
        status_code=http_status, content=ajax_response(payload, internal_status)
    )


@router.get(
    "/JSON",
    response_model=AjaxResponse,
    summary="AJAX dispatch",
    description="Run the AJAX handler named by the `method` query parameter.",
)
async def ajax_get(request: Request) -> JSONResponse:
    return await dispatch(request)


@router.post(
    "/JSON",
    response_model=AjaxResponse,
    summary="AJAX dispatch (form post)",
    description="Run the AJAX handler named by `method`; form fields are "
    "available to the handler as post parameters.",
)
async def ajax_post(request: Request) -> JSONResponse:
    return await dispatch(request)
