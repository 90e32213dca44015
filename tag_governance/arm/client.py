"""
Async Azure Resource Manager client with pagination, throttling, retry, and safety enforcement.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncGenerator, Optional

import httpx

from ..config import (
    ARM_BASE_URL,
    MAX_RETRIES,
    INITIAL_BACKOFF_SECONDS,
    MAX_BACKOFF_SECONDS,
    BACKOFF_MULTIPLIER,
    MAX_PAGES_PER_ENDPOINT,
)
from ..safety.guardian import MutationGuardian

logger = logging.getLogger("tag_governance.arm")

THROTTLE_STATUSES = (429, 503, 504)


class ArmAPIError(Exception):
    """Raised when ARM returns a non-recoverable error."""
    def __init__(self, status_code: int, message: str, url: str, code: str = ""):
        self.status_code = status_code
        self.url = url
        self.code = code
        super().__init__(f"ARM API Error {status_code} for {url}: {message}")


def _error_details(response: httpx.Response) -> tuple[str, str]:
    """Extract (code, message) from an ARM error envelope."""
    try:
        body = response.json() if response.content else {}
    except ValueError:
        return "", response.text[:200]
    error = body.get("error", {}) if isinstance(body, dict) else {}
    return error.get("code", ""), error.get("message", response.text[:200])


class ArmClient:
    """
    Async client for the ARM REST API, used as `async with ArmClient(...) as client`.

    Every request passes the MutationGuardian before it is sent. List endpoints
    are followed through `nextLink`; throttled responses are retried.
    """

    def __init__(
        self,
        access_token: str,
        guardian: MutationGuardian,
        base_url: str = ARM_BASE_URL,
        initial_backoff: float = INITIAL_BACKOFF_SECONDS,
    ):
        self.access_token = access_token
        self.guardian = guardian
        self.base_url = base_url.rstrip("/")
        self.initial_backoff = initial_backoff
        self._request_count = 0
        self._throttle_count = 0
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        headers = {"Authorization": f"Bearer {self.access_token}", "Accept": "application/json"}
        self._client = httpx.AsyncClient(headers=headers, timeout=httpx.Timeout(60.0, connect=30.0))
        return self

    async def __aexit__(self, *exc):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _build_url(self, endpoint: str) -> str:
        """Build full ARM URL from a relative path."""
        if endpoint.startswith("http"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def get(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """Execute a single GET request with retry/throttle handling."""
        url = self._build_url(endpoint)
        self.guardian.validate_request("GET", url)
        return await self._execute_with_retry("GET", url, params=params)

    async def get_all_pages(self, endpoint: str, params: Optional[dict] = None) -> list[dict]:
        return [item async for item in self.get_all_pages_stream(endpoint, params)]

    async def get_all_pages_stream(
        self,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> AsyncGenerator[dict, None]:
        """Stream all pages of a list endpoint, following nextLink."""
        url: Optional[str] = self._build_url(endpoint)
        pages = 0

        while url and pages < MAX_PAGES_PER_ENDPOINT:
            self.guardian.validate_request("GET", url)
            data = await self._execute_with_retry("GET", url, params=params)

            for item in data.get("value", []):
                yield item

            url = data.get("nextLink")
            params = None  # nextLink carries the query string
            pages += 1

        if pages >= MAX_PAGES_PER_ENDPOINT:
            logger.warning(
                f"Pagination safety cap reached ({MAX_PAGES_PER_ENDPOINT} pages) "
                f"for endpoint: {endpoint}"
            )

    async def patch(self, endpoint: str, body: dict, params: Optional[dict] = None) -> dict:
        """Execute a PATCH. Only throttling responses are retried."""
        url = self._build_url(endpoint)
        self.guardian.validate_request("PATCH", url, body)
        return await self._execute_with_retry("PATCH", url, params=params, json_body=body)

    def _next_delay(self, response: Optional[httpx.Response], backoff: float) -> float:
        """Seconds to wait before the next attempt: Retry-After if larger than our backoff."""
        if response is None:
            return backoff
        try:
            return max(float(response.headers.get("Retry-After", backoff)), backoff)
        except ValueError:
            return backoff

    async def _execute_with_retry(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> dict:
        """
        Send one request, retrying throttled responses (429/503/504) with
        exponential backoff. Connection failures and timeouts are retried for
        GET only; a timed-out PATCH may still have been applied.
        """
        if self._client is None:
            raise RuntimeError("ArmClient not initialized. Use 'async with' context.")
        if method not in ("GET", "PATCH"):
            raise ValueError(f"Unsupported method: {method}")

        backoff = self.initial_backoff
        for attempt in range(1, MAX_RETRIES + 2):
            last_try = attempt > MAX_RETRIES
            try:
                response = await self._client.request(method, url, params=params, json=json_body)
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if method != "GET" or last_try:
                    raise
                logger.warning(f"{type(e).__name__} on {method} {url}, retry {attempt}/{MAX_RETRIES}")
                await asyncio.sleep(self._next_delay(None, backoff))
                backoff = min(backoff * BACKOFF_MULTIPLIER, MAX_BACKOFF_SECONDS)
                continue

            self._request_count += 1
            status = response.status_code

            if 200 <= status < 300:
                if status == 204 or not response.content.strip():
                    return {}
                try:
                    return response.json()
                except ValueError:
                    logger.debug(f"{status} response with non-JSON body from {url}")
                    return {}

            if status in THROTTLE_STATUSES and not last_try:
                self._throttle_count += 1
                delay = self._next_delay(response, backoff)
                logger.warning(f"Throttled ({status}) on {url}; retry {attempt}/{MAX_RETRIES} in {delay:.1f}s")
                await asyncio.sleep(delay)
                backoff = min(backoff * BACKOFF_MULTIPLIER, MAX_BACKOFF_SECONDS)
                continue

            code, message = _error_details(response)
            raise ArmAPIError(status, message, url, code=code)

        raise ArmAPIError(429, "Maximum retries exceeded", url)

    def get_stats(self) -> dict[str, Any]:
        return {
            "total_requests": self._request_count,
            "throttle_events": self._throttle_count,
        }
