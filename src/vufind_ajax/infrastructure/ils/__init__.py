"""ILS gateway adapters."""

from .authenticator import IlsAuthenticator
from .connection import IlsConnection

__all__ = ["IlsAuthenticator", "IlsConnection"]
