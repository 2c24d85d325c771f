"""AJAX handlers.

Each handler answers one `method` of the /AJAX/JSON endpoint. The
AjaxHandlerPluginManager maps method names to handler factories.
"""

from vufind_ajax.ajax_handler.base import AbstractBase, AjaxHandler
from vufind_ajax.ajax_handler.context import HandlerContext
from vufind_ajax.ajax_handler.params import Params

__all__ = ["AbstractBase", "AjaxHandler", "HandlerContext", "Params"]
