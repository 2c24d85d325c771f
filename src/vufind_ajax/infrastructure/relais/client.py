"""Relais D2D interlibrary loan API client."""

import logging
from typing import Any, Dict, Optional

import httpx

from vufind_ajax.config.app_settings import RelaisConfig
from vufind_ajax.exception.api_exceptions import RelaisError

logger = logging.getLogger(__name__)


class RelaisClient:
    """Authenticate patrons and look up / order items through Relais.

    Attributes:
        config: Relais section of the settings
    """

    def __init__(self, http_client: httpx.AsyncClient, config: RelaisConfig):
        self._client = http_client
        self.config = config

    async def _post(
        self, url: str, body: Dict[str, Any], aid: Optional[str] = None
    ) -> Dict[str, Any]:
        params = {"aid": aid} if aid else None
        try:
            response = await self._client.post(url, json=body, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise RelaisError(f"Relais request failed: {e}") from e
        except ValueError as e:
            raise RelaisError("Relais returned invalid JSON") from e

    def _search_body(self, oclc: str) -> Dict[str, Any]:
        return {
            "PartnershipId": self.config.group,
            "ExactSearch": [{"Type": "OCLC", "Value": oclc}],
        }

    async def authenticate(self, patron_id: Optional[str] = None) -> str:
        """Obtain an authorization id for a patron (or the lookup patron).

        Raises:
            RelaisError: When Relais rejects the patron or is unreachable
        """
        patron_id = patron_id or self.config.patron_for_lookup
        if not patron_id:
            raise RelaisError("No patron available for Relais authentication")

        result = await self._post(
            self.config.authentication_url,
            {
                "ApiKey": self.config.api_key,
                "UserGroup": "patron",
                "PartnershipId": self.config.group,
                "LibrarySymbol": self.config.symbol,
                "PatronId": patron_id,
            },
        )
        aid = result.get("AuthorizationId")
        if not aid:
            problem = result.get("Problem") or {}
            raise RelaisError(problem.get("Message") or "Relais authentication failed")
        return aid

    async def search(self, oclc: str, aid: str) -> Dict[str, Any]:
        return await self._post(
            self.config.availability_url, self._search_body(oclc), aid
        )

    async def place_request(
        self,
        oclc: str,
        aid: str,
        pickup_location: Optional[str] = None,
        notes: str = "",
    ) -> Dict[str, Any]:
        body = self._search_body(oclc)
        body["PickupLocation"] = pickup_location or ""
        body["Notes"] = notes
        return await self._post(self.config.order_url, body, aid)
