import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from tmetric_mcp.client import DEFAULT_API_URL, TMetricAPIError, TMetricClient


def _response(status_code=200, json_data=None, text="x"):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = json_data
    return response


def test_client_requires_token(monkeypatch):
    monkeypatch.delenv("TMETRIC_API_TOKEN", raising=False)
    with pytest.raises(ValueError, match="TMETRIC_API_TOKEN"):
        TMetricClient(api_token="")


def test_client_sends_bearer_token():
    with patch("tmetric_mcp.client.httpx.AsyncClient") as MockClient:
        TMetricClient(api_token="secret", base_url=DEFAULT_API_URL)
        kwargs = MockClient.call_args.kwargs
        assert kwargs["base_url"] == DEFAULT_API_URL
        assert kwargs["headers"]["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_get_time_entries_passes_date_range():
    with patch("tmetric_mcp.client.httpx.AsyncClient") as MockClient:
        instance = MockClient.return_value
        instance.request = AsyncMock(return_value=_response(json_data=[{"id": 1}]))

        client = TMetricClient(api_token="secret")
        entries = await client.get_time_entries("acc", "2024-01-15", "2024-01-15")

        assert entries == [{"id": 1}]
        instance.request.assert_awaited_once_with(
            "GET",
            "/accounts/acc/timeentries",
            json=None,
            params={"startDate": "2024-01-15", "endDate": "2024-01-15"},
        )


@pytest.mark.asyncio
async def test_error_status_raises_api_error():
    with patch("tmetric_mcp.client.httpx.AsyncClient") as MockClient:
        instance = MockClient.return_value
        instance.request = AsyncMock(return_value=_response(status_code=500, text="Internal Server Error"))

        client = TMetricClient(api_token="secret")
        with pytest.raises(TMetricAPIError) as excinfo:
            await client.get_projects("acc")

        assert excinfo.value.status_code == 500
        assert "Internal Server Error" in str(excinfo.value)


@pytest.mark.asyncio
async def test_delete_with_empty_body_returns_none():
    with patch("tmetric_mcp.client.httpx.AsyncClient") as MockClient:
        instance = MockClient.return_value
        instance.request = AsyncMock(return_value=_response(status_code=204, text=""))

        client = TMetricClient(api_token="secret")
        assert await client.delete_time_entry("acc", "e1") is None
        instance.request.assert_awaited_once_with(
            "DELETE", "/accounts/acc/timeentries/e1", json=None, params=None
        )
