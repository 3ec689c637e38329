import errno
import json

import httpx
import pytest

from travel_resilience.circuit_breaker import CircuitBreaker
from travel_resilience.duffel_client import DuffelAPIError, DuffelClient
from travel_resilience.exceptions import CircuitOpenError, ExternalAPIError
from travel_resilience.models import CircuitState, RetryOptions
from travel_resilience.normalizer import normalize


def duffel_error(status, message, code="server_error"):
    return httpx.Response(
        status,
        json={
            "errors": [{"code": code, "message": message, "title": "Error"}],
            "meta": {"status": status, "request_id": "FZW0H3HdJwKk5HMAAKxB"},
        },
    )


class Recorder:
    """MockTransport handler replaying queued responses"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_client(handler, clock, sleeps, threshold=5, api_key="duffel_test_key", max_retries=2):
    breaker = CircuitBreaker("flight_provider", threshold=threshold, timeout=60, clock=clock)
    return DuffelClient(
        breaker,
        api_key=api_key,
        transport=httpx.MockTransport(handler),
        retry_options=RetryOptions(max_retries=max_retries, retry_delay=0.5),
        sleep=sleeps,
    )


@pytest.mark.asyncio
async def test_list_airlines_sends_auth_and_version(clock, sleeps):
    handler = Recorder(httpx.Response(200, json={"data": [{"iata_code": "BA", "name": "British Airways"}]}))

    async with make_client(handler, clock, sleeps) as client:
        airlines = await client.list_airlines(limit=1)

    assert airlines == [{"iata_code": "BA", "name": "British Airways"}]
    request = handler.requests[0]
    assert request.url.path == "/air/airlines"
    assert request.url.params["limit"] == "1"
    assert request.headers["Authorization"] == "Bearer duffel_test_key"
    assert request.headers["Duffel-Version"] == "v2"


@pytest.mark.asyncio
async def test_create_offer_request_payload(clock, sleeps):
    handler = Recorder(httpx.Response(201, json={"data": {"id": "orq_1", "offers": []}}))
    slices = [{"origin": "LHR", "destination": "JFK", "departure_date": "2026-12-01"}]

    async with make_client(handler, clock, sleeps) as client:
        result = await client.create_offer_request(slices, [{"type": "adult"}], cabin_class="economy")

    assert result["id"] == "orq_1"
    request = handler.requests[0]
    assert request.method == "POST"
    assert request.url.params["return_offers"] == "true"
    body = json.loads(request.content)
    assert body == {
        "data": {"slices": slices, "passengers": [{"type": "adult"}], "cabin_class": "economy"}
    }


@pytest.mark.asyncio
async def test_server_errors_are_retried_then_succeed(clock, sleeps):
    handler = Recorder(
        duffel_error(503, "Service unavailable"),
        httpx.Response(200, json={"data": {"id": "off_1"}}),
    )

    async with make_client(handler, clock, sleeps) as client:
        offer = await client.get_offer("off_1")

    assert offer == {"id": "off_1"}
    assert len(handler.requests) == 2
    assert sleeps.delays == [0.5]
    assert client.breaker.get_state().failure_count == 0


@pytest.mark.asyncio
async def test_client_errors_fail_without_retry(clock, sleeps):
    handler = Recorder(duffel_error(422, "Offer no longer available", code="offer_no_longer_available"))

    async with make_client(handler, clock, sleeps) as client:
        with pytest.raises(DuffelAPIError) as exc_info:
            await client.get_offer("off_gone")

    err = exc_info.value
    assert len(handler.requests) == 1
    assert sleeps.delays == []
    assert err.status_code == 422
    assert err.meta == {"status": 422, "request_id": "FZW0H3HdJwKk5HMAAKxB"}
    assert err.errors[0]["code"] == "offer_no_longer_available"

    normalized = normalize(err)
    assert isinstance(normalized, ExternalAPIError)
    assert normalized.message == "Duffel API error: Offer no longer available"
    assert normalized.details["status"] == 422


@pytest.mark.asyncio
async def test_connection_resets_are_retried(clock, sleeps):
    reset = httpx.ConnectError("connection reset")
    reset.__cause__ = ConnectionResetError(errno.ECONNRESET, "Connection reset by peer")
    handler = Recorder(reset, httpx.Response(200, json={"data": []}))

    async with make_client(handler, clock, sleeps) as client:
        assert await client.list_airlines() == []
    assert len(handler.requests) == 2


@pytest.mark.asyncio
async def test_exhausted_retries_count_once_against_breaker_and_trip_it(clock, sleeps):
    handler = Recorder(*[duffel_error(500, "Internal error") for _ in range(6)])

    async with make_client(handler, clock, sleeps, threshold=2, max_retries=2) as client:
        for _ in range(2):
            with pytest.raises(DuffelAPIError):
                await client.list_airlines()

        assert len(handler.requests) == 6
        assert client.breaker.get_state().state is CircuitState.OPEN

        with pytest.raises(CircuitOpenError):
            await client.list_airlines()
        assert len(handler.requests) == 6


def test_error_without_json_body():
    response = httpx.Response(502, text="<html>Bad Gateway</html>")
    err = DuffelAPIError.from_response(response)
    assert err.status_code == 502
    assert err.errors == []
    assert err.message == "HTTP 502 Bad Gateway"


@pytest.mark.asyncio
async def test_check_connection(clock, sleeps):
    ok = make_client(Recorder(httpx.Response(200, json={"data": []})), clock, sleeps)
    assert await ok.check_connection() is True
    await ok.aclose()

    failing = make_client(Recorder(duffel_error(401, "Invalid token", code="unauthorized")), clock, sleeps)
    assert await failing.check_connection() is False
    await failing.aclose()


@pytest.mark.asyncio
async def test_check_connection_without_api_key(clock, sleeps, monkeypatch, log_records):
    monkeypatch.delenv("DUFFEL_API_KEY", raising=False)
    handler = Recorder()

    client = make_client(handler, clock, sleeps, api_key=None)
    assert await client.check_connection() is False
    assert handler.requests == []
    assert any("DUFFEL_API_KEY not set" in r["message"] for r in log_records)
    await client.aclose()


def test_error_with_malformed_meta_and_errors():
    response = httpx.Response(500, json={"errors": "boom", "meta": "not-a-dict"})
    err = DuffelAPIError.from_response(response)
    assert err.status_code == 500
    assert err.errors == []
    assert err.meta == {"status": 500, "request_id": None}


def test_error_with_non_integer_status_uses_http_status():
    response = httpx.Response(503, json={"errors": [], "meta": {"status": "unavailable"}})
    assert DuffelAPIError.from_response(response).status_code == 503


@pytest.mark.asyncio
async def test_success_body_without_data_envelope(clock, sleeps):
    handler = Recorder(httpx.Response(200, json=[{"iata_code": "AF"}]))

    async with make_client(handler, clock, sleeps) as client:
        assert await client.list_airlines() == [{"iata_code": "AF"}]
