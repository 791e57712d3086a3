"""Async client for the U.S. Treasury Fiscal Data "Debt to the Penny" endpoint.

The dataset holds one record per business day since 1993-04-01 with four
amounts: total public debt outstanding, debt held by the public and
intragovernmental holdings. Requests are plain GETs with JSON:API-style
query parameters:

    fields=record_date,tot_pub_debt_out_amt,debt_held_public_amt,intragov_hold_amt
    filter=record_date:gte:2024-01-01,record_date:lte:2024-12-31   (optional)
    sort=-record_date
    page[number]=1
    page[size]=100

Example:
    >>> async with TreasuryClient() as client:
    ...     envelope = await client.fetch(filter="record_date:eq:2024-12-31")
    ...     print(envelope.data[0].total_public_debt_outstanding)
"""

from __future__ import annotations

import json
import logging

import httpx
from pydantic import ValidationError

from debtchat.config import get_settings
from debtchat.errors import ProtocolError, TransportError
from debtchat.logging_config import get_logger
from debtchat.models.debt import DebtApiEnvelope, DebtQuery

DEBT_TO_PENNY_ENDPOINT = "/services/api/fiscal_service/v2/accounting/od/debt_to_penny"

FIELD_RECORD_DATE = "record_date"
FIELD_TOTAL_PUBLIC_DEBT_OUTSTANDING = "tot_pub_debt_out_amt"
FIELD_DEBT_HELD_BY_PUBLIC = "debt_held_public_amt"
FIELD_INTRAGOVERNMENTAL_HOLDINGS = "intragov_hold_amt"

DEFAULT_FIELDS = ",".join(
    [
        FIELD_RECORD_DATE,
        FIELD_TOTAL_PUBLIC_DEBT_OUTSTANDING,
        FIELD_DEBT_HELD_BY_PUBLIC,
        FIELD_INTRAGOVERNMENTAL_HOLDINGS,
    ]
)
DEFAULT_SORT = f"-{FIELD_RECORD_DATE}"
DEFAULT_PAGE_NUMBER = 1
DEFAULT_PAGE_SIZE = 100


def build_query_string(query: DebtQuery) -> str:
    """Build the request query string for ``query``, applying defaults.

    Parameter order is fixed and nothing time-dependent goes in, so equal
    queries always produce equal strings.
    """
    params = [f"fields={DEFAULT_FIELDS}"]
    if query.filter is not None and query.filter.strip():
        params.append(f"filter={query.filter}")
    params.append(f"sort={query.sort or DEFAULT_SORT}")
    params.append(f"page[number]={query.page_number or DEFAULT_PAGE_NUMBER}")
    params.append(f"page[size]={query.page_size or DEFAULT_PAGE_SIZE}")
    return "&".join(params)


class TreasuryClient:
    """Fetches Debt to the Penny pages and parses them into ``DebtApiEnvelope``.

    The underlying ``httpx.AsyncClient`` may be shared; it is only closed by
    ``aclose()`` when this client created it.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            http_client: Pre-configured client (e.g. with a mock transport). Its
                base URL is used as-is.
            base_url: API host. Falls back to settings.treasury_base_url.
            timeout: Request timeout in seconds. Falls back to settings.treasury_timeout.
            logger: Logger to use instead of the module logger.
        """
        settings = get_settings()
        self._logger = logger or get_logger(__name__)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url or settings.treasury_base_url,
            timeout=timeout or settings.treasury_timeout,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> TreasuryClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch(
        self,
        filter: str | None = None,
        sort: str | None = None,
        page_number: int | None = None,
        page_size: int | None = None,
    ) -> DebtApiEnvelope:
        """Fetch one page of debt records.

        Args:
            filter: ``field:operator:value`` expression, comma-joined for AND.
                Omitted from the request when blank.
            sort: Sort field, ``-`` prefix for descending. Default ``-record_date``.
            page_number: 1-based page number. Default 1.
            page_size: Records per page (1-10000). Default 100.

        Returns:
            DebtApiEnvelope with the records and pagination metadata

        Raises:
            ValueError: If page_number or page_size is out of range
            TransportError: On a non-success status or connection failure
            ProtocolError: If the body is empty, null, not JSON or not an envelope
        """
        query = DebtQuery(filter=filter, sort=sort, page_number=page_number, page_size=page_size)
        request_uri = f"{DEBT_TO_PENNY_ENDPOINT}?{build_query_string(query)}"

        self._logger.debug(f"Requesting Treasury API: {request_uri}")

        try:
            response = await self._client.get(request_uri)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Treasury API returned HTTP {e.response.status_code} for {request_uri}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            # any failure while sending the request or reading the body
            raise TransportError(f"Treasury API request failed: {type(e).__name__}: {e}") from e

        envelope = self._parse(response, request_uri)

        self._logger.info(
            f"Treasury API returned {envelope.meta.count} records (total: {envelope.meta.total_count})"
        )
        return envelope

    def _parse(self, response: httpx.Response, request_uri: str) -> DebtApiEnvelope:
        if not response.content.strip():
            self._logger.error(f"Treasury API returned an empty response for: {request_uri}")
            raise ProtocolError("Treasury API returned an empty response.")

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self._logger.error(f"Treasury API returned a body that is not JSON for: {request_uri}")
            raise ProtocolError(f"Treasury API returned invalid JSON: {e}") from e

        if payload is None:
            self._logger.error(f"Treasury API returned null response for: {request_uri}")
            raise ProtocolError("Treasury API returned an empty response.")

        try:
            return DebtApiEnvelope.model_validate(payload)
        except ValidationError as e:
            self._logger.error(f"Treasury API response did not match the expected envelope for: {request_uri}")
            raise ProtocolError(f"Treasury API returned an unexpected payload: {e.error_count()} validation error(s)") from e
