"""HTTP connection to the ILS gateway.

The gateway exposes the ILS driver operations as JSON calls:

    POST {ils_url}/{method}   body: {"args": [...]}
    200 → {"result": <value>}
    4xx/5xx or {"error": "..."} → failure

Transport errors, non-2xx answers and gateway-reported errors are raised as
ILSError so handlers can apply their catch-and-report policy.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from vufind_ajax.exception.api_exceptions import ILSError
from vufind_ajax.service.availability_status import AvailabilityStatusManager

logger = logging.getLogger(__name__)


class IlsConnection:
    """Client for the ILS gateway.

    Attributes:
        base_url: Gateway base URL
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        availability_manager: Optional[AvailabilityStatusManager] = None,
    ):
        self._client = http_client
        self.base_url = base_url.rstrip("/")
        self.availability_manager = availability_manager or AvailabilityStatusManager()

    async def _call(self, method: str, *args: Any) -> Any:
        url = f"{self.base_url}/{method}"
        logger.debug(f"ILS call: {method}")
        try:
            response = await self._client.post(url, json={"args": list(args)})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise ILSError(f"ILS call {method} failed: {e}") from e
        except ValueError as e:
            raise ILSError(f"ILS call {method} returned invalid JSON") from e

        if isinstance(payload, dict) and payload.get("error"):
            raise ILSError(str(payload["error"]), details={"method": method})
        if isinstance(payload, dict):
            return payload.get("result")
        return payload

    async def check_capability(
        self, method: str, params: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Ask whether the driver supports a method for the given parameters.

        A gateway failure counts as "not supported".
        """
        try:
            return bool(await self._call("checkCapability", method, params or {}))
        except ILSError as e:
            logger.warning(f"Capability check for {method} failed: {e.message}")
            return False

    async def get_statuses(self, ids: List[str]) -> Any:
        """Item statuses for several records.

        Returns:
            One list of item dicts per record, each item's "availability"
            normalized to an AvailabilityStatus. Non-list gateway answers are
            returned unchanged.
        """
        statuses = await self._call("getStatuses", ids)
        if not isinstance(statuses, list):
            return statuses

        normalized = []
        for record in statuses:
            items = []
            for item in record or []:
                item = dict(item)
                item["availability"] = self.availability_manager.from_item(item)
                item.pop("status", None)
                item.pop("use_unknown_message", None)
                items.append(item)
            normalized.append(items)
        return normalized

    async def get_holdings_text_field_names(self) -> List[str]:
        return list(await self._call("getHoldingsTextFieldNames") or [])

    async def get_offline_mode(self) -> Optional[str]:
        return await self._call("getOfflineMode") or None

    async def patron_login(
        self, username: str, password: str
    ) -> Optional[Dict[str, Any]]:
        return await self._call("patronLogin", username, password) or None

    async def get_my_fines(self, patron: Dict[str, Any]) -> List[Dict[str, Any]]:
        return list(await self._call("getMyFines", patron) or [])

    async def get_my_holds(self, patron: Dict[str, Any]) -> List[Dict[str, Any]]:
        return list(await self._call("getMyHolds", patron) or [])

    async def get_my_transactions(self, patron: Dict[str, Any]) -> Dict[str, Any]:
        """Current loans as {"count": n, "records": [...]}."""
        result = await self._call("getMyTransactions", patron, {})
        if isinstance(result, list):
            return {"count": len(result), "records": result}
        return result or {"count": 0, "records": []}

    async def get_my_ill_requests(
        self, patron: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        return list(await self._call("getMyILLRequests", patron) or [])

    async def get_my_storage_retrieval_requests(
        self, patron: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        return list(await self._call("getMyStorageRetrievalRequests", patron) or [])

    async def check_request_is_valid(
        self, record_id: str, data: Dict[str, Any], patron: Dict[str, Any]
    ) -> Any:
        return await self._call("checkRequestIsValid", record_id, data, patron)

    async def check_ill_request_is_valid(
        self, record_id: str, data: Dict[str, Any], patron: Dict[str, Any]
    ) -> Any:
        return await self._call("checkILLRequestIsValid", record_id, data, patron)

    async def check_storage_retrieval_request_is_valid(
        self, record_id: str, data: Dict[str, Any], patron: Dict[str, Any]
    ) -> Any:
        return await self._call(
            "checkStorageRetrievalRequestIsValid", record_id, data, patron
        )

    async def get_ill_pickup_locations(
        self, record_id: str, pickup_lib: str, patron: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        return list(
            await self._call("getILLPickupLocations", record_id, pickup_lib, patron)
            or []
        )

    async def get_pickup_locations(
        self, patron: Dict[str, Any], details: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        return list(await self._call("getPickUpLocations", patron, details) or [])

    async def get_default_pickup_location(
        self, patron: Dict[str, Any], details: Dict[str, Any]
    ) -> Any:
        return await self._call("getDefaultPickUpLocation", patron, details)

    async def change_pickup_location(
        self, patron: Dict[str, Any], details: Dict[str, Any]
    ) -> Dict[str, Any]:
        return await self._call("changePickupLocation", patron, details) or {}
