"""Exception handling package.

This package provides custom exception classes that the error handler
middleware maps to AJAX error responses.
"""

from vufind_ajax.exception.api_exceptions import VuFindException

__all__ = ["VuFindException"]
