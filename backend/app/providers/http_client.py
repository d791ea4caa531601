import asyncio
import logging
import time
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("parlay.http_client")

_RETRYABLE_STATUSES = {429, 500, 502, 503, 504}
_MAX_DELAY = 30.0


class ProviderUnavailable(Exception):
    """Raised when the circuit is open or every attempt failed."""


class CircuitBreaker:
    """Stops calling an upstream after repeated failures until a cool-down passes."""

    def __init__(self, failure_threshold: int = 3, recovery_timeout: float = 300.0):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.opened_at: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.opened_at is not None

    def record_success(self) -> None:
        if self.is_open:
            logger.info("Circuit breaker closed again")
        self.failure_count = 0
        self.opened_at = None

    def record_failure(self) -> None:
        self.failure_count += 1
        if self.failure_count >= self.failure_threshold:
            self.opened_at = time.monotonic()
            logger.warning("Circuit breaker OPEN after %d failures", self.failure_count)

    def can_attempt(self) -> bool:
        if not self.is_open:
            return True
        # Half-open: one probe after the cool-down
        return time.monotonic() - self.opened_at >= self.recovery_timeout


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _safe_url(url: str) -> str:
    """Strip query params (the API key travels there) for logging."""
    parsed = urlparse(str(url))
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


class ResilientClient:
    """httpx.AsyncClient with a short retry/backoff loop and a circuit breaker.

    Non-retryable responses (including 4xx) are returned to the caller as-is.
    ProviderUnavailable is raised when the circuit is open or when the last
    attempt still failed.
    """

    def __init__(
        self,
        name: str,
        timeout: float = 15.0,
        max_retries: int = 2,
        base_delay: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._name = name
        self._max_retries = max_retries
        self._base_delay = base_delay
        self.circuit = CircuitBreaker()

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if not self.circuit.can_attempt():
            raise ProviderUnavailable(f"{self._name}: circuit open")

        attempts = self._max_retries + 1
        failure = ""
        for attempt in range(attempts):
            delay = self._base_delay * (2 ** attempt)
            try:
                resp = await self._client.request(method, url, **kwargs)
            except (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError) as exc:
                failure = f"network error: {exc}"
            else:
                if resp.status_code not in _RETRYABLE_STATUSES:
                    self.circuit.record_success()
                    return resp
                failure = f"HTTP {resp.status_code}"
                delay = _retry_after(resp) or delay

            logger.warning(
                "[%s] %s on %s %s (attempt %d/%d)",
                self._name, failure, method, _safe_url(url), attempt + 1, attempts,
            )
            if attempt < self._max_retries:
                await asyncio.sleep(min(delay, _MAX_DELAY))

        self.circuit.record_failure()
        logger.error("[%s] Giving up on %s %s: %s", self._name, method, _safe_url(url), failure)
        raise ProviderUnavailable(f"{self._name}: {failure}")

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
