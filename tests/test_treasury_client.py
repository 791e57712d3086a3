"""Tests for the Treasury Debt to the Penny client."""

import httpx
import pytest

from debtchat.errors import ProtocolError, TransportError
from debtchat.models.debt import DebtQuery
from debtchat.treasury import DEBT_TO_PENNY_ENDPOINT, TreasuryClient, build_query_string

BASE_URL = "https://api.fiscaldata.treasury.gov"


def make_client(handler, requests=None, **client_kwargs):
    """Create a TreasuryClient over a mock transport, recording requests."""

    def recording_handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    http_client = httpx.AsyncClient(
        base_url=BASE_URL,
        transport=httpx.MockTransport(recording_handler),
        **client_kwargs,
    )
    return TreasuryClient(http_client=http_client)


class TestBuildQueryString:
    """Tests for query string construction."""

    def test_defaults(self):
        """Test that an empty query gets the default fields, sort and paging."""
        assert build_query_string(DebtQuery()) == (
            "fields=record_date,tot_pub_debt_out_amt,debt_held_public_amt,intragov_hold_amt"
            "&sort=-record_date&page[number]=1&page[size]=100"
        )

    def test_filter_included_between_fields_and_sort(self):
        """Test that a filter is placed after fields and before sort."""
        query = DebtQuery(filter="record_date:eq:2024-12-31", sort="record_date", page_number=2, page_size=5)
        assert build_query_string(query) == (
            "fields=record_date,tot_pub_debt_out_amt,debt_held_public_amt,intragov_hold_amt"
            "&filter=record_date:eq:2024-12-31&sort=record_date&page[number]=2&page[size]=5"
        )

    @pytest.mark.parametrize("blank", ["", "   "])
    def test_blank_filter_omitted(self, blank):
        """Test that blank filters are left out of the request."""
        assert "filter=" not in build_query_string(DebtQuery(filter=blank))

    def test_same_query_same_string(self):
        """Test that equal queries build equal strings."""
        query = DebtQuery(filter="record_calendar_year:eq:2008", page_size=1)
        assert build_query_string(query) == build_query_string(query.model_copy())

    @pytest.mark.parametrize("kwargs", [{"page_size": 0}, {"page_size": 10001}, {"page_number": 0}])
    def test_out_of_range_paging_rejected(self, kwargs):
        """Test that paging values outside the allowed range are rejected."""
        with pytest.raises(ValueError):
            DebtQuery(**kwargs)


class TestTreasuryClientFetch:
    """Tests for TreasuryClient.fetch."""

    @pytest.mark.asyncio
    async def test_fetch_sends_default_query(self, debt_payload):
        """Test that fetch requests the endpoint with default parameters."""
        requests = []
        client = make_client(lambda request: httpx.Response(200, json=debt_payload), requests)

        await client.fetch()

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "GET"
        assert request.url.path == DEBT_TO_PENNY_ENDPOINT
        assert request.url.params["fields"] == "record_date,tot_pub_debt_out_amt,debt_held_public_amt,intragov_hold_amt"
        assert request.url.params["sort"] == "-record_date"
        assert request.url.params["page[number]"] == "1"
        assert request.url.params["page[size]"] == "100"
        assert "filter" not in request.url.params

    @pytest.mark.asyncio
    async def test_fetch_passes_filter(self, debt_payload):
        """Test that a filter reaches the request unchanged."""
        requests = []
        client = make_client(lambda request: httpx.Response(200, json=debt_payload), requests)

        await client.fetch(filter="record_date:gte:2024-01-01,record_date:lte:2024-12-31", page_size=10)

        params = requests[0].url.params
        assert params["filter"] == "record_date:gte:2024-01-01,record_date:lte:2024-12-31"
        assert params["page[size]"] == "10"

    @pytest.mark.asyncio
    async def test_fetch_parses_envelope(self, debt_payload):
        """Test that the response is parsed into records and metadata."""
        client = make_client(lambda request: httpx.Response(200, json=debt_payload))

        envelope = await client.fetch(filter="record_date:eq:2024-12-31")

        assert len(envelope.data) == 2
        first = envelope.data[0]
        assert first.record_date == "2024-12-31"
        assert first.total_public_debt_outstanding == "36218605311689.45"
        assert first.debt_held_by_public == "28832894430542.57"
        assert first.intragovernmental_holdings == "7385710881146.88"
        assert envelope.meta.count == 2
        assert envelope.meta.total_count == 7900
        assert envelope.meta.total_pages == 3950

    @pytest.mark.asyncio
    async def test_empty_data_is_not_an_error(self):
        """Test that a page with no records parses fine."""
        payload = {"data": [], "meta": {"count": 0, "total-count": 0, "total-pages": 0}}
        client = make_client(lambda request: httpx.Response(200, json=payload))

        envelope = await client.fetch(filter="record_date:eq:1990-01-01")

        assert envelope.data == []
        assert envelope.meta.total_count == 0

    @pytest.mark.asyncio
    async def test_server_error_raises_transport_error(self):
        """Test that a non-success status raises TransportError with the code."""
        client = make_client(lambda request: httpx.Response(500, text="Internal Server Error"))

        with pytest.raises(TransportError) as exc_info:
            await client.fetch()

        assert exc_info.value.status_code == 500
        assert "500" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_not_found_raises_transport_error(self):
        """Test that 4xx statuses are also transport errors."""
        client = make_client(lambda request: httpx.Response(404))

        with pytest.raises(TransportError) as exc_info:
            await client.fetch()

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_connection_failure_raises_transport_error(self):
        """Test that connection failures raise TransportError without a status code."""

        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(TransportError) as exc_info:
            await client.fetch()

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_undecodable_body_raises_transport_error(self):
        """Test that a body that cannot be decompressed raises TransportError."""
        client = make_client(
            lambda request: httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not gzip at all")
        )

        with pytest.raises(TransportError) as exc_info:
            await client.fetch()

        assert isinstance(exc_info.value.__cause__, httpx.DecodingError)

    @pytest.mark.asyncio
    async def test_redirect_loop_raises_transport_error(self):
        """Test that an endless redirect raises TransportError."""
        client = make_client(
            lambda request: httpx.Response(302, headers={"location": DEBT_TO_PENNY_ENDPOINT}),
            follow_redirects=True,
        )

        with pytest.raises(TransportError) as exc_info:
            await client.fetch()

        assert isinstance(exc_info.value.__cause__, httpx.TooManyRedirects)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"", b"   ", b"null"])
    async def test_empty_or_null_body_raises_protocol_error(self, body):
        """Test that an absent body is a protocol error."""
        client = make_client(lambda request: httpx.Response(200, content=body))

        with pytest.raises(ProtocolError):
            await client.fetch()

    @pytest.mark.asyncio
    async def test_non_json_body_raises_protocol_error(self):
        """Test that a body that is not JSON is a protocol error."""
        client = make_client(lambda request: httpx.Response(200, content=b"<html>maintenance</html>"))

        with pytest.raises(ProtocolError):
            await client.fetch()

    @pytest.mark.asyncio
    async def test_unexpected_shape_raises_protocol_error(self):
        """Test that JSON without the envelope fields is a protocol error."""
        client = make_client(lambda request: httpx.Response(200, json={"error": "nope"}))

        with pytest.raises(ProtocolError):
            await client.fetch()

    @pytest.mark.asyncio
    async def test_invalid_paging_fails_before_request(self):
        """Test that invalid paging raises ValueError without calling the API."""
        requests = []
        client = make_client(lambda request: httpx.Response(200, json={}), requests)

        with pytest.raises(ValueError):
            await client.fetch(page_size=0)

        assert requests == []


class TestTreasuryClientLifecycle:
    """Tests for client ownership and closing."""

    @pytest.mark.asyncio
    async def test_shared_client_not_closed(self):
        """Test that an injected http client stays open after aclose."""
        http_client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        async with TreasuryClient(http_client=http_client):
            pass

        assert not http_client.is_closed
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_uses_settings(self, monkeypatch):
        """Test that the default client is built from settings and closed on exit."""
        monkeypatch.setenv("DEBTCHAT_TREASURY_BASE_URL", "https://example.test")
        from debtchat.config import reload_settings

        reload_settings()

        client = TreasuryClient()
        assert str(client._client.base_url).startswith("https://example.test")

        await client.aclose()
        assert client._client.is_closed
