"""Nextcloud Tables as the user data source.

The table scheme comes from the OCS v2 API, the rows from the v1 API:

    GET {url}/ocs/v2.php/apps/tables/api/2/tables/scheme/{table_id}
    GET {url}/index.php/apps/tables/api/1/tables/{table_id}/rows

Parsing is lenient in the same way decoding is: columns of a type the
decoder cannot handle are left out of the schema, so their cells are
dropped later as "column absent".
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from ..config.settings import NextcloudConfig
from .errors import BackendAPIError, SourceError
from .http_client import ApiClient, REQUEST_TIMEOUT
from .models import (
    Column,
    ColumnSchema,
    RawCell,
    RawRow,
    SelectionColumn,
    SelectionOption,
    SelectionSubtype,
    TextColumn,
)

logger = logging.getLogger(__name__)

_SUBTYPES = {
    "": SelectionSubtype.SINGLE,
    "multi": SelectionSubtype.MULTI,
    "check": SelectionSubtype.CHECK,
}


class NextcloudError(SourceError, BackendAPIError):
    """Table schema or rows could not be fetched."""

    def __init__(self, status_code: int, message: str, endpoint: str):
        BackendAPIError.__init__(self, status_code, message, endpoint)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_column(data: Any) -> Optional[Column]:
    if not isinstance(data, dict) or not _is_int(data.get("id")) or not isinstance(data.get("title"), str):
        return None
    kind = data.get("type")
    if kind == "text":
        return TextColumn(id=data["id"], title=data["title"])
    if kind == "selection":
        subtype = _SUBTYPES.get(data.get("subtype") or "")
        if subtype is None:
            return None
        options = tuple(
            SelectionOption(id=option["id"], label=option["label"])
            for option in data.get("selectionOptions") or []
            if isinstance(option, dict) and _is_int(option.get("id")) and isinstance(option.get("label"), str)
        )
        return SelectionColumn(id=data["id"], title=data["title"], subtype=subtype, options=options)
    return None


def parse_schema(columns: List[Any]) -> ColumnSchema:
    schema = []
    for data in columns:
        column = parse_column(data)
        if column is None:
            logger.debug("[nextcloud] Ignoring unsupported column %r", data)
            continue
        schema.append(column)
    return tuple(schema)


def parse_rows(rows: List[Any]) -> List[RawRow]:
    parsed: List[RawRow] = []
    for row in rows:
        data = row.get("data") if isinstance(row, dict) else None
        cells = tuple(
            RawCell(column_id=cell["columnId"], value=cell.get("value"))
            for cell in data or []
            if isinstance(cell, dict) and _is_int(cell.get("columnId"))
        )
        parsed.append(cells)
    return parsed


class NextcloudTableClient(ApiClient):
    """Read-only client for the Nextcloud Tables API.

    Usage:
        client = NextcloudTableClient("https://cloud.example.org", "bot", "app-password")
        schema = client.fetch_schema(3)
        rows = client.fetch_rows(3)
    """

    error_class = NextcloudError

    def __init__(self, base_url: str, username: str, password: str, timeout: float = REQUEST_TIMEOUT):
        super().__init__(base_url, timeout)
        self.username = username
        self.password = password

    @classmethod
    def from_config(cls, config: NextcloudConfig) -> "NextcloudTableClient":
        return cls(config.url, config.username, config.password, timeout=config.request_timeout)

    def request(self, method: str, path: str, **kwargs: Any):
        headers: Dict[str, str] = kwargs.pop("headers", {}) or {}
        headers["OCS-APIRequest"] = "true"
        kwargs.setdefault("auth", (self.username, self.password))
        return super().request(method, path, headers=headers, **kwargs)

    def fetch_schema(self, table_id: int) -> ColumnSchema:
        path = f"/ocs/v2.php/apps/tables/api/2/tables/scheme/{table_id}"
        payload = self.get_json(path)
        try:
            columns = payload["ocs"]["data"]["columns"]
        except (KeyError, TypeError) as exc:
            raise NextcloudError(200, "unexpected scheme envelope", path) from exc
        if not isinstance(columns, list):
            raise NextcloudError(200, "scheme columns is not a list", path)
        schema = parse_schema(columns)
        logger.info("[nextcloud] Table %s has %d usable column(s)", table_id, len(schema))
        return schema

    def fetch_rows(self, table_id: int) -> List[RawRow]:
        path = f"/index.php/apps/tables/api/1/tables/{table_id}/rows"
        payload = self.get_json(path)
        if not isinstance(payload, list):
            raise NextcloudError(200, "rows response is not a list", path)
        rows = parse_rows(payload)
        logger.info("[nextcloud] Fetched %d row(s) from table %s", len(rows), table_id)
        return rows
