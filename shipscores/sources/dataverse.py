"""
==============================================================================
Dataverse Source Module
==============================================================================

Data source backed by a Power Pages / Dataverse Web API.

FetchXML Transport:
------------------
- POST /_api/retrieveMultiple  with body {"query": "<fetch ...>"}   (default)
- GET  /_api/retrieveMultiple?fetchXml=<fetch ...>

OData Paging:
------------
Responses carry rows in "value". When "@odata.nextLink" (or the legacy
"odata.nextLink") is present, the next page is fetched with GET until no
link remains or ``max_pages`` pages have been read.

Row Mapping:
-----------
Catalog rows are liner rows outer-joined to ships (alias "ship"), so one row
per ship and one ship-less row for an empty liner. Rows are grouped by liner
id in the order returned. Detail rows map "inspectiondate" and "score" to
DetailRow, preferring formatted values when the API supplies them.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

import httpx

from shipscores.catalog.models import DetailRow, LinerRecord, ShipRecord

from .base import DataSource, SourceError


# Module logger
logger = logging.getLogger(__name__)

RETRIEVE_MULTIPLE_PATH = "/_api/retrieveMultiple"
FORMATTED_SUFFIX = "@OData.Community.Display.V1.FormattedValue"


def preview_fetch_xml(fetch_xml: str, limit: int = 300) -> str:
    """Collapse whitespace and truncate FetchXML for log lines."""
    text = " ".join((fetch_xml or "").split())
    if len(text) > limit:
        text = text[:limit] + " …"
    return text


class DataverseSource(DataSource):
    """
    Data source talking to the Dataverse Web API over httpx.

    Example:
        >>> source = DataverseSource("https://portal.example.org", catalog_fetch_xml=..., details_fetch_xml=...)
        >>> liners = await source.fetch_catalog()
        >>> await source.close()
    """

    name = "dataverse"

    LINER_ID_KEY = "accountid"
    LINER_NAME_KEY = "name"
    SHIP_ID_KEY = "ship.shipid"
    SHIP_NAME_KEY = "ship.name"
    DATE_KEY = "inspectiondate"
    SCORE_KEY = "score"

    def __init__(
        self,
        base_url: str,
        catalog_fetch_xml: str,
        details_fetch_xml: str,
        token: Optional[str] = None,
        method: str = "POST",
        max_pages: int = 50,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        """
        Args:
            base_url: Portal root URL
            catalog_fetch_xml: Query for liners joined to ships
            details_fetch_xml: Query template with a ``{ship_id}`` placeholder
            token: Optional bearer token
            method: "POST" or "GET" for FetchXML queries
            max_pages: Paging limit per query
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use MockTransport)
        """
        headers = {
            "Accept": "application/json",
            "OData-MaxVersion": "4.0",
            "OData-Version": "4.0",
            "Prefer": f'odata.include-annotations="{FORMATTED_SUFFIX[1:]}"',
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._catalog_fetch_xml = catalog_fetch_xml
        self._details_fetch_xml = details_fetch_xml
        self._method = method.upper()
        self._max_pages = max_pages
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # DATA SOURCE API
    # =========================================================================

    async def fetch_catalog(self) -> List[LinerRecord]:
        rows = await self.run_fetch(self._catalog_fetch_xml)

        liners: Dict[str, LinerRecord] = {}
        seen_ships = set()
        for row in rows:
            liner_id = self._text(row, self.LINER_ID_KEY)
            name = self._text(row, self.LINER_NAME_KEY)
            key = liner_id or name
            if key not in liners:
                liners[key] = LinerRecord(id=liner_id, name=name)

            ship_id = self._text(row, self.SHIP_ID_KEY)
            if not ship_id and self.SHIP_NAME_KEY not in row:
                continue
            if ship_id and (key, ship_id) in seen_ships:
                continue
            seen_ships.add((key, ship_id))
            liners[key].ships.append(ShipRecord(
                id=ship_id,
                name=self._text(row, self.SHIP_NAME_KEY),
                metadata={"liner_id": liner_id} if liner_id else {},
            ))

        logger.info(f"Dataverse catalog: {len(rows)} rows -> {len(liners)} liners")
        return list(liners.values())

    async def fetch_details(self, ship_id: str) -> List[DetailRow]:
        fetch_xml = self._details_fetch_xml.replace(
            "{ship_id}", escape(ship_id, {'"': "&quot;"})
        )
        rows = await self.run_fetch(fetch_xml)

        details = []
        for row in rows:
            date = self._text(row, self.DATE_KEY)
            score = self._text(row, self.SCORE_KEY)
            if not date and not score:
                continue
            details.append(DetailRow(date=date, score=score))
        return details

    # =========================================================================
    # WEB API HELPERS
    # =========================================================================

    async def run_fetch(self, fetch_xml: str, method: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Run a FetchXML query and return every row across all pages.

        Raises:
            SourceError: Empty FetchXML, transport failure or HTTP error
        """
        fx = (fetch_xml or "").strip()
        if not fx:
            raise SourceError("FetchXML is empty")

        method = (method or self._method).upper()
        logger.debug(f"run_fetch {method}: {preview_fetch_xml(fx)}")

        if method == "GET":
            payload = await self._send("GET", RETRIEVE_MULTIPLE_PATH, params={"fetchXml": fx})
        else:
            payload = await self._send("POST", RETRIEVE_MULTIPLE_PATH, json={"query": fx})

        rows = list(self._rows(payload))
        next_link = self._next_link(payload)
        if next_link:
            rows.extend(await self.odata_get_all(next_link, max_pages=self._max_pages - 1))
        return rows

    async def odata_get_all(self, url: str, max_pages: Optional[int] = None) -> List[Dict[str, Any]]:
        """Follow OData paging from ``url`` and collect every row."""
        limit = self._max_pages if max_pages is None else max_pages
        rows: List[Dict[str, Any]] = []
        next_url: Optional[str] = url
        page = 0

        while next_url and page < limit:
            payload = await self._send("GET", next_url)
            page_rows = self._rows(payload)
            rows.extend(page_rows)
            next_url = self._next_link(payload)
            page += 1
            logger.debug(f"OData page {page}: {len(page_rows)} rows (total {len(rows)})")

        if next_url:
            logger.warning(f"OData paging stopped at max pages ({limit})")

        return rows

    async def _send(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Web API {method} {url} failed: {e}")
            raise SourceError(f"Web API request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(
                f"Web API {method} {url} returned {response.status_code}: "
                f"{response.text[:500]}"
            )
            raise SourceError(f"Web API returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise SourceError("Web API returned a non-JSON body") from e

        if not isinstance(payload, dict):
            raise SourceError("Web API returned an unexpected payload")
        return payload

    @staticmethod
    def _rows(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        rows = payload.get("value") or []
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise SourceError("Web API returned an unexpected payload")
        return rows

    @staticmethod
    def _next_link(payload: Dict[str, Any]) -> Optional[str]:
        return payload.get("@odata.nextLink") or payload.get("odata.nextLink")

    @staticmethod
    def _text(row: Dict[str, Any], key: str) -> str:
        value = row.get(key + FORMATTED_SUFFIX, row.get(key))
        return "" if value is None else str(value).strip()
