"""Tools exposed to the chat model.

Two tools are registered per chat session:

    - get_current_date: today's UTC date, so the model can resolve "current",
      "this year" and similar phrases
    - get_us_debt: a page of Debt to the Penny records from the Treasury API

Tool descriptions are written for the model: they are the only place it
learns the filter syntax, operators and defaults.

Treasury failures never escape ``get_us_debt``; they are returned as an
``{"error": ...}`` JSON payload the model can relay to the user.
"""

import json
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

from debtchat.errors import ProtocolError, TransportError
from debtchat.logging_config import get_logger
from debtchat.models.debt import DebtQuery
from debtchat.models.tool import ToolDefinition
from debtchat.treasury import TreasuryClient

GET_CURRENT_DATE = "get_current_date"
GET_US_DEBT = "get_us_debt"

GET_CURRENT_DATE_DESCRIPTION = (
    "Returns today's date in ISO 8601 format (yyyy-MM-dd). Use this when you need to know the current date."
)

GET_US_DEBT_DESCRIPTION = """\
Fetches U.S. public debt data from the Treasury "Debt to the Penny" API.
This is the ONLY source for debt data. The dataset contains daily records starting from 1993-04-01.

Fields returned: record_date, tot_pub_debt_out_amt (total public debt outstanding),
debt_held_public_amt (debt held by the public), intragov_hold_amt (intragovernmental holdings).
These are also the names accepted by filter and sort.
Amounts are exact decimal strings in U.S. dollars.

Filter syntax: field:operator:value (comma-separated for multiple, all must match).
Operators: eq, gt, gte, lt, lte, in.
Example filters:
- "record_date:gte:2024-01-01,record_date:lte:2024-12-31" (date range)
- "record_date:eq:2024-06-15" (exact date)
- "record_calendar_year:eq:2008" (entire year)
- "record_date:in:(2024-01-02,2024-12-31)" (specific dates)

Sort: prefix with - for descending. Default: -record_date (newest first).
Paging: page_number is 1-based (default 1); page_size is 1-10000 (default 100).
"""

FETCH_FAILED_MESSAGE = "Failed to fetch data from Treasury API. The service may be temporarily unavailable."
EMPTY_RESPONSE_MESSAGE = "Treasury API returned an empty or unreadable response."


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClockTool:
    """Reports the current UTC date from an injectable time source."""

    def __init__(self, now: Callable[[], datetime] | None = None, logger: logging.Logger | None = None):
        """Initialize the clock.

        Args:
            now: Callable returning the current instant. Naive datetimes are
                taken as UTC. Defaults to the system clock.
            logger: Logger to use instead of the module logger.
        """
        self._now = now or _utc_now
        self._logger = logger or get_logger(__name__)

    def get_current_date(self) -> str:
        """Return today's UTC date as yyyy-MM-dd."""
        instant = self._now()
        if instant.tzinfo is not None:
            instant = instant.astimezone(timezone.utc)
        formatted = instant.date().isoformat()
        self._logger.debug(f"get_current_date tool invoked, returning: {formatted}")
        return formatted


class DebtDataTool:
    """Wraps ``TreasuryClient`` and turns every fetch into a compact JSON string."""

    def __init__(self, client: TreasuryClient, logger: logging.Logger | None = None):
        self._client = client
        self._logger = logger or get_logger(__name__)

    async def get_us_debt(
        self,
        filter: str | None = None,
        sort: str | None = None,
        page_number: int | None = None,
        page_size: int | None = None,
    ) -> str:
        """Fetch debt records and serialize them for the model.

        Returns:
            JSON with ``records`` and ``pagination`` (returned, total_records,
            total_pages, current_page), or ``{"error": "..."}`` on failure.
        """
        self._logger.info(
            f"get_us_debt tool invoked with filter={filter}, sort={sort}, page={page_number}, size={page_size}"
        )

        try:
            envelope = await self._client.fetch(
                filter=filter,
                sort=sort,
                page_number=page_number,
                page_size=page_size,
            )
        except TransportError as e:
            self._logger.error(f"Failed to fetch debt data from Treasury API: {e}", exc_info=True)
            return _dumps({"error": FETCH_FAILED_MESSAGE})
        except ProtocolError as e:
            self._logger.error(f"Treasury API response could not be used: {e}", exc_info=True)
            return _dumps({"error": EMPTY_RESPONSE_MESSAGE})
        except ValueError as e:
            self._logger.warning(f"get_us_debt called with invalid arguments: {e}")
            return _dumps({"error": f"Invalid query parameters: {_describe_validation_error(e)}"})

        result = {
            "records": [record.model_dump(by_alias=True) for record in envelope.data],
            "pagination": {
                "returned": envelope.meta.count,
                "total_records": envelope.meta.total_count,
                "total_pages": envelope.meta.total_pages,
                "current_page": page_number or 1,
            },
        }
        return _dumps(result)


def _dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"))


def _describe_validation_error(error: ValueError) -> str:
    errors = getattr(error, "errors", None)
    if callable(errors):
        return "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in errors())
    return str(error)


def _debt_query_schema() -> dict[str, Any]:
    schema = DebtQuery.model_json_schema()
    schema.pop("title", None)
    schema.pop("description", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    return schema


def build_tool_registry(clock: ClockTool, debt: DebtDataTool) -> Mapping[str, ToolDefinition]:
    """Create the read-only name -> ToolDefinition registry for one chat session."""
    definitions = [
        ToolDefinition(
            name=GET_CURRENT_DATE,
            description=GET_CURRENT_DATE_DESCRIPTION,
            parameters={"type": "object", "properties": {}, "required": []},
            function=clock.get_current_date,
        ),
        ToolDefinition(
            name=GET_US_DEBT,
            description=GET_US_DEBT_DESCRIPTION,
            parameters=_debt_query_schema(),
            function=debt.get_us_debt,
        ),
    ]
    return MappingProxyType({definition.name: definition for definition in definitions})
