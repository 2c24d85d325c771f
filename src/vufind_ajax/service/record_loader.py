"""Load catalog records from the search backend."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from vufind_ajax.constants import DEFAULT_SEARCH_BACKEND
from vufind_ajax.exception.api_exceptions import RecordMissingError, SearchBackendError
from vufind_ajax.infrastructure.search.solr_client import SolrClient

logger = logging.getLogger(__name__)


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


@dataclass
class Record:
    """A bibliographic record as returned by the search backend.

    Attributes:
        id: Record identifier
        source: Search backend name
        fields: Raw stored fields
    """

    id: str
    source: str = DEFAULT_SEARCH_BACKEND
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return str(_first(self.fields.get("title")) or "")

    @property
    def author(self) -> str:
        return str(_first(self.fields.get("author")) or "")

    @property
    def isbns(self) -> List[str]:
        value = self.fields.get("isbn") or []
        return value if isinstance(value, list) else [value]

    @property
    def work_keys(self) -> List[str]:
        return list(self.fields.get("work_keys_str_mv") or [])

    def get_thumbnail(self, size: str = "small") -> Optional[Dict[str, str]]:
        """Cover Show parameters for this record, None without cover data."""
        if self.fields.get("thumbnail"):
            return {"url": str(self.fields["thumbnail"])}
        if not self.isbns:
            return None
        return {"size": size, "isbn": self.isbns[0], "recordid": self.id}

    def cover_url(self, size: str = "small") -> Optional[str]:
        thumb = self.get_thumbnail(size)
        if thumb is None:
            return None
        if "url" in thumb:
            return thumb["url"]
        return "/Cover/Show?" + urlencode(thumb)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "source": self.source, "title": self.title}


class RecordLoader:
    """Fetch records by id."""

    def __init__(self, solr: SolrClient):
        self.solr = solr

    async def load(
        self, record_id: str, source: str = DEFAULT_SEARCH_BACKEND
    ) -> Record:
        """Load one record.

        Raises:
            RecordMissingError: If the backend does not know the id
            SearchBackendError: If the backend call fails or the source is unsupported
        """
        if source != DEFAULT_SEARCH_BACKEND:
            raise SearchBackendError(f"Unsupported search backend: {source}")
        doc = await self.solr.get_record(record_id)
        if not doc:
            raise RecordMissingError(record_id, source)
        return Record(id=str(doc.get("id", record_id)), source=source, fields=doc)

    async def load_batch(
        self, record_ids: List[str], source: str = DEFAULT_SEARCH_BACKEND
    ) -> List[Record]:
        """Load several records, silently skipping ids the backend lacks."""
        if source != DEFAULT_SEARCH_BACKEND:
            raise SearchBackendError(f"Unsupported search backend: {source}")
        docs = await self.solr.get_records(record_ids)
        return [Record(id=str(doc["id"]), source=source, fields=doc) for doc in docs]
