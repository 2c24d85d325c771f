"""API controllers.

This package provides the AJAX dispatch endpoint and the health check.
"""

from vufind_ajax.controller import ajax_controller, health_controller

__all__ = ["ajax_controller", "health_controller"]
