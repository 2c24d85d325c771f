"""Thin HTTP client for a Solr core."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import httpx

from vufind_ajax.exception.api_exceptions import SearchBackendError

logger = logging.getLogger(__name__)

SolrParams = Union[Dict[str, Any], Sequence[Tuple[str, Any]]]


class SolrClient:
    """Run select/ping requests against one Solr core.

    Attributes:
        base_url: Solr base URL, e.g. http://localhost:8983/solr
        core: Core name
    """

    def __init__(self, http_client: httpx.AsyncClient, base_url: str, core: str):
        self._client = http_client
        self.base_url = base_url.rstrip("/")
        self.core = core

    @property
    def core_url(self) -> str:
        return f"{self.base_url}/{self.core}"

    async def _get(self, handler: str, params: SolrParams) -> Dict[str, Any]:
        if isinstance(params, dict):
            items: List[Tuple[str, Any]] = []
            for key, value in params.items():
                if isinstance(value, (list, tuple)):
                    items.extend((key, v) for v in value)
                else:
                    items.append((key, value))
        else:
            items = list(params)
        items.append(("wt", "json"))

        try:
            response = await self._client.get(
                f"{self.core_url}/{handler}", params=items
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise SearchBackendError(f"Solr {handler} request failed: {e}") from e
        except ValueError as e:
            raise SearchBackendError(f"Solr {handler} returned invalid JSON") from e

    async def select(
        self, params: SolrParams, handler: str = "select"
    ) -> Dict[str, Any]:
        """Run a search and return the decoded Solr response."""
        return await self._get(handler, params)

    async def ping(self) -> None:
        """Raise SearchBackendError unless the core answers OK."""
        data = await self._get("admin/ping", {})
        if data.get("status") != "OK":
            raise SearchBackendError(f"Solr ping status: {data.get('status')}")

    async def get_record(self, record_id: str) -> Optional[Dict[str, Any]]:
        data = await self._get("get", {"id": record_id})
        return data.get("doc")

    async def get_records(self, record_ids: Sequence[str]) -> List[Dict[str, Any]]:
        if not record_ids:
            return []
        data = await self._get("get", {"ids": ",".join(record_ids)})
        return list(data.get("response", {}).get("docs", []))
