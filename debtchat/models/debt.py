from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class DebtQuery(BaseModel):
    """Parameters for one Debt to the Penny request."""

    filter: Annotated[
        str | None,
        Field(
            default=None,
            description=(
                "Filter expression. Example: 'record_date:gte:2024-01-01,record_date:lte:2024-12-31'. "
                "Use record_calendar_year for year queries."
            ),
        ),
    ]
    sort: Annotated[
        str | None,
        Field(default=None, description="Sort field with optional - prefix for descending. Default: '-record_date'."),
    ]
    page_number: Annotated[
        int | None,
        Field(default=None, ge=1, description="Page number (1-based). Default: 1."),
    ]
    page_size: Annotated[
        int | None,
        Field(default=None, ge=1, le=10000, description="Number of records per page (1-10000). Default: 100."),
    ]


class DebtRecord(BaseModel):
    """One daily Debt to the Penny snapshot.

    Amounts stay strings: they exceed the integer precision of a float and are
    displayed exactly as published.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    record_date: Annotated[str, Field(alias="record_date", description="Record date (YYYY-MM-DD)")]
    total_public_debt_outstanding: Annotated[
        str, Field(alias="tot_pub_debt_out_amt", description="Total public debt outstanding")
    ]
    debt_held_by_public: Annotated[str, Field(alias="debt_held_public_amt", description="Debt held by the public")]
    intragovernmental_holdings: Annotated[
        str, Field(alias="intragov_hold_amt", description="Intragovernmental holdings")
    ]


class DebtApiMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    count: Annotated[int, Field(alias="count", description="Records returned in this page")]
    total_count: Annotated[int, Field(alias="total-count", description="Records matching the query")]
    total_pages: Annotated[int, Field(alias="total-pages", description="Pages available at this page size")]


class DebtApiEnvelope(BaseModel):
    """A page of records plus pagination metadata, as returned by the API."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    data: Annotated[list[DebtRecord], Field(description="Records in this page")]
    meta: Annotated[DebtApiMeta, Field(description="Pagination metadata")]
