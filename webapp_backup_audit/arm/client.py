"""
Async Azure Resource Manager client with pagination, throttling, and safety enforcement.
Requests are issued one at a time; callers await each before sending the next.
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
from ..safety.guardian import SafetyGuardian, SafetyViolation

logger = logging.getLogger("webapp_backup_audit.arm")


class ArmAPIError(Exception):
    """Raised when ARM returns a non-recoverable error."""
    def __init__(self, status_code: int, message: str, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"ARM API Error {status_code} for {url}: {message}")


class ArmClient:
    """
    Async Azure Resource Manager client.
    Features:
      - Safety-validated requests (read-only enforcement)
      - Automatic pagination with nextLink
      - Backoff on 429/503/504 honoring Retry-After
      - 404 surfaced as a marker instead of an exception
    """

    def __init__(
        self,
        access_token: str,
        guardian: SafetyGuardian,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.guardian = guardian
        self._transport = transport
        self._request_count = 0
        self._throttle_count = 0
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(60.0, connect=30.0),
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _build_url(self, path: str) -> str:
        """Build full ARM URL from a resource path."""
        if path.startswith("http"):
            return path
        return f"{ARM_BASE_URL}/{path.lstrip('/')}"

    async def post_action(self, path: str, api_version: str) -> dict:
        """
        Invoke a read-style ARM action (e.g. .../config/backup/list).
        The guardian rejects anything that is not on its safe list.
        """
        url = self._build_url(path)
        self.guardian.validate_request("POST", url)
        return await self._execute_with_retry(
            "POST", url, params={"api-version": api_version}
        )

    async def get_all_pages(
        self,
        path: str,
        api_version: str,
        params: Optional[dict] = None,
    ) -> list[dict]:
        """Fetch all pages of a list endpoint into a list."""
        items = []
        async for item in self.get_all_pages_stream(path, api_version, params):
            items.append(item)
        return items

    async def get_all_pages_stream(
        self,
        path: str,
        api_version: str,
        params: Optional[dict] = None,
    ) -> AsyncGenerator[dict, None]:
        """Stream all pages of a list endpoint, following nextLink."""
        url: Optional[str] = self._build_url(path)
        query: Optional[dict] = {"api-version": api_version, **(params or {})}
        pages = 0

        while url and pages < MAX_PAGES_PER_ENDPOINT:
            self.guardian.validate_request("GET", url)
            data = await self._execute_with_retry("GET", url, params=query)

            for item in data.get("value", []):
                yield item

            # nextLink already carries api-version and the skip token
            url = data.get("nextLink")
            query = None
            pages += 1

        if pages >= MAX_PAGES_PER_ENDPOINT:
            logger.warning(
                f"Pagination safety cap reached ({MAX_PAGES_PER_ENDPOINT} pages) "
                f"for endpoint: {path}"
            )

    async def _execute_with_retry(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
    ) -> dict:
        """Execute request with exponential backoff on throttling."""
        backoff = INITIAL_BACKOFF_SECONDS

        for attempt in range(MAX_RETRIES + 1):
            response = await self._execute_raw(method, url, params=params)
            self._request_count += 1

            if response.status_code == 200:
                if not response.content or not response.content.strip():
                    return {}
                try:
                    body = response.json()
                except ValueError:
                    raise ArmAPIError(
                        200, f"Response body is not JSON: {response.text[:200]!r}", url
                    )
                if not isinstance(body, dict):
                    raise ArmAPIError(200, "Response body is not a JSON object", url)
                return body

            if response.status_code == 204:
                return {}

            if response.status_code == 404:
                logger.debug(f"404 Not Found: {url}")
                return {"value": [], "_not_found": True}

            if response.status_code in (429, 503, 504) and attempt < MAX_RETRIES:
                self._throttle_count += 1
                wait_time = max(_retry_after_seconds(response, backoff), backoff)
                logger.warning(
                    f"Throttled ({response.status_code}) on {url}. "
                    f"Retry {attempt + 1}/{MAX_RETRIES} in {wait_time:.1f}s"
                )
                await asyncio.sleep(wait_time)
                backoff = min(backoff * BACKOFF_MULTIPLIER, MAX_BACKOFF_SECONDS)
                continue

            raise ArmAPIError(response.status_code, _error_message(response), url)

        raise ArmAPIError(429, "Max retries exceeded", url)

    async def _execute_raw(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
    ) -> httpx.Response:
        """Execute raw HTTP request."""
        if not self._client:
            raise RuntimeError("ArmClient not initialized. Use 'async with' context.")

        if method == "GET":
            return await self._client.get(url, params=params)
        elif method == "POST":
            return await self._client.post(url, params=params)
        else:
            raise SafetyViolation(f"Unsupported method at raw level: {method}")

    def get_stats(self) -> dict:
        """Return client statistics."""
        return {
            "total_requests": self._request_count,
            "throttle_events": self._throttle_count,
        }


def _retry_after_seconds(response: httpx.Response, default: float) -> float:
    """Retry-After in seconds; HTTP-date or garbage values fall back to default."""
    try:
        return float(response.headers.get("Retry-After", default))
    except ValueError:
        return default


def _error_message(response: httpx.Response) -> str:
    try:
        body: Any = response.json() if response.content else {}
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return body.get("error", {}).get("message", response.text[:200])
    return response.text[:200]
