"""Async client for the Duffel flight API, guarded by a circuit breaker and retries"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from loguru import logger

from .circuit_breaker import CircuitBreaker
from .config import (
    DEFAULT_REQUEST_TIMEOUT,
    DUFFEL_API_URL,
    DUFFEL_API_VERSION,
    get_duffel_api_key,
)
from .models import RetryOptions
from .retry import retry_operation


class DuffelAPIError(Exception):
    """
    Error response from the Duffel API.

    Mirrors the error document Duffel returns: ``meta`` holds the HTTP status
    and request id, ``errors`` the list of provider error objects.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        errors: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or []
        self.meta = {"status": status_code, "request_id": request_id}

    @classmethod
    def from_response(cls, response: httpx.Response) -> "DuffelAPIError":
        try:
            document = response.json()
        except ValueError:
            document = {}
        if not isinstance(document, dict):
            document = {}

        errors = document.get("errors")
        if not isinstance(errors, list):
            errors = []
        meta = document.get("meta")
        if not isinstance(meta, dict):
            meta = {}
        if errors and isinstance(errors[0], dict):
            first = errors[0]
            message = first.get("message") or first.get("title") or response.reason_phrase
        else:
            message = f"HTTP {response.status_code} {response.reason_phrase}"

        status = meta.get("status")
        if not isinstance(status, int):
            status = response.status_code

        return cls(
            message,
            status_code=status,
            errors=errors,
            request_id=meta.get("request_id"),
        )


class DuffelClient:
    """
    Thin Duffel API client.

    Every request is retried on transient failures and the whole retry
    sequence runs through the flight provider's circuit breaker, so a
    provider outage fails fast instead of piling up requests.
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        api_key: Optional[str] = None,
        base_url: str = DUFFEL_API_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        retry_options: Optional[RetryOptions] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize Duffel client.

        Args:
            breaker: Circuit breaker for the flight provider
            api_key: Duffel access token, defaults to DUFFEL_API_KEY
            base_url: API root
            timeout: Request timeout in seconds
            retry_options: Retry configuration for each request
            transport: Optional httpx transport (used by tests)
            sleep: Coroutine used to wait between retries
        """
        self.breaker = breaker
        self.api_key = api_key if api_key is not None else get_duffel_api_key()
        self.retry_options = retry_options or RetryOptions()
        self._sleep = sleep

        if not self.api_key:
            logger.warning("DUFFEL_API_KEY not set - Duffel integration will not work")

        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {self.api_key}",
                "Duffel-Version": DUFFEL_API_VERSION,
            },
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return the ``data`` member of the response"""

        async def attempt():
            return await self._send(method, path, params, payload)

        return await self.breaker.execute(
            lambda: retry_operation(attempt, self.retry_options, sleep=self._sleep)
        )

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        payload: Optional[Dict[str, Any]],
    ) -> Any:
        logger.debug(f"→ Duffel {method} {path}")
        response = await self._client.request(method, path, params=params, json=payload)
        logger.debug(f"← Duffel {response.status_code} {method} {path}")

        if response.status_code >= 400:
            raise DuffelAPIError.from_response(response)

        document = response.json()
        if isinstance(document, dict):
            return document.get("data")
        return document

    async def list_airlines(self, limit: int = 50) -> List[Dict[str, Any]]:
        return await self.request("GET", "/air/airlines", params={"limit": limit})

    async def create_offer_request(
        self,
        slices: List[Dict[str, Any]],
        passengers: List[Dict[str, Any]],
        cabin_class: Optional[str] = None,
        return_offers: bool = True,
    ) -> Dict[str, Any]:
        """
        Search for flights.

        Args:
            slices: Journeys, each with origin, destination and departure_date
            passengers: Passenger descriptors, e.g. [{"type": "adult"}]
            cabin_class: economy, premium_economy, business or first
            return_offers: Include the offers in the response
        """
        data: Dict[str, Any] = {"slices": slices, "passengers": passengers}
        if cabin_class:
            data["cabin_class"] = cabin_class
        return await self.request(
            "POST",
            "/air/offer_requests",
            params={"return_offers": str(return_offers).lower()},
            payload={"data": data},
        )

    async def get_offer(self, offer_id: str) -> Dict[str, Any]:
        return await self.request("GET", f"/air/offers/{offer_id}")

    async def check_connection(self) -> bool:
        """Check Duffel is configured and reachable with a lightweight call"""
        if not self.api_key:
            return False

        try:
            await self.list_airlines(limit=1)
        except Exception as e:
            logger.error(f"Duffel connection check failed: {e}")
            return False
        return True
