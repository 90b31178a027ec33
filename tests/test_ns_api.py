import httpx
import pytest

from conftest import API_KEY

from ns_travel_mcp.config import NsApiSettings
from ns_travel_mcp.ns_api import SUBSCRIPTION_KEY_HEADER, NsApiClient, RemoteApiError


def test_build_url_skips_missing_params(client):
    url = httpx.URL(
        client.build_url(
            "reisinformatie-api/api/v2/departures",
            {"station": "ASD", "maxJourneys": "10", "dateTime": None},
        )
    )

    assert url.host == "ns.test"
    assert url.path == "/reisinformatie-api/api/v2/departures"
    assert dict(url.params) == {"station": "ASD", "maxJourneys": "10"}


def test_build_url_without_params():
    client = NsApiClient(NsApiSettings(base_url="https://gateway.example/"))

    assert client.build_url("/reisinformatie-api/api/v3/disruptions") == (
        "https://gateway.example/reisinformatie-api/api/v3/disruptions"
    )


@pytest.mark.asyncio
async def test_request_sends_subscription_key(client, fake_api):
    fake_api.add("/reisinformatie-api/api/v3/disruptions", [{"id": "1"}])

    data = await client.request(client.build_url("reisinformatie-api/api/v3/disruptions"), API_KEY)

    assert data == [{"id": "1"}]
    (request,) = fake_api.requests
    assert request.method == "GET"
    assert request.headers[SUBSCRIPTION_KEY_HEADER] == API_KEY
    assert request.headers["Content-Type"] == "application/json"
    assert "Authorization" not in request.headers


@pytest.mark.asyncio
async def test_non_success_status_raises(client, fake_api):
    fake_api.add("/reisinformatie-api/api/v3/trips", {"message": "quota"}, status=429)

    with pytest.raises(RemoteApiError) as excinfo:
        await client.get_json("reisinformatie-api/api/v3/trips", API_KEY)

    assert excinfo.value.status_code == 429
    assert excinfo.value.reason == "Too Many Requests"
    assert str(excinfo.value) == "NS API error: 429 Too Many Requests"
    assert len(fake_api.requests) == 1


@pytest.mark.asyncio
async def test_non_json_body_raises(client, fake_api):
    fake_api.add("/places-api/v2/places", text="<html>maintenance</html>")

    with pytest.raises(RemoteApiError, match="non-JSON response"):
        await client.get_json("places-api/v2/places", API_KEY, {"q": "Utrecht"})
