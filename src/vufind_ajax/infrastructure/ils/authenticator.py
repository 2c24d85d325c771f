"""Resolve the ILS patron for a logged-in catalog user."""

import logging
from typing import Any, Dict, Optional

from vufind_ajax.exception.api_exceptions import ILSError
from vufind_ajax.infrastructure.ils.connection import IlsConnection
from vufind_ajax.infrastructure.persistence.postgresql.models import User

logger = logging.getLogger(__name__)


class IlsAuthenticator:
    """Log users into the ILS with their stored catalog credentials.

    The patron is cached for the lifetime of the authenticator, which is
    created once per request.
    """

    def __init__(self, ils: IlsConnection, user: Optional[User] = None):
        self.ils = ils
        self.user = user
        self._patron: Optional[Dict[str, Any]] = None
        self._attempted = False

    async def stored_catalog_login(self) -> Optional[Dict[str, Any]]:
        """Patron dict for the current user, or None when unavailable.

        Users without stored credentials, rejected credentials and ILS
        failures all yield None.
        """
        if self._attempted:
            return self._patron
        self._attempted = True

        if self.user is None or not self.user.cat_username:
            return None

        try:
            self._patron = await self.ils.patron_login(
                self.user.cat_username, self.user.cat_password or ""
            )
        except ILSError as e:
            logger.error(f"Catalog login failed for user {self.user.id}: {e.message}")
            self._patron = None
        return self._patron
