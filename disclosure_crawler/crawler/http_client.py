"""
HTTP infrastructure layer for upstream exchange requests.

Provides:
- RetryConfig: Exponential backoff configuration
- HTTPClient: Async HTTP client with optional retry on transient errors

Fetchers own the source-specific checks (status fields, table shapes);
this layer only deals with transport and HTTP status codes.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """
    Exponential backoff configuration for HTTP retries.

    ``max_retries=0`` (the default) issues exactly one request.

    Formula: min(max_backoff, base_delay * 2^attempt) * (1 + random(0, jitter_factor))
    """

    max_retries: int = 0
    max_backoff_seconds: float = 10.0
    base_delay: float = 1.0
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int) -> float:
        """
        Calculate backoff duration for a given retry attempt.

        Args:
            attempt: The retry attempt number (0-indexed)

        Returns:
            Backoff duration in seconds with jitter applied
        """
        delay = min(self.base_delay * (2**attempt), self.max_backoff_seconds)
        jitter = delay * self.jitter_factor * random.random()
        return delay + jitter

    def is_retryable_status(self, status_code: int) -> bool:
        """Retry on 429 and transient 5xx responses."""
        return status_code in {429, 500, 502, 503, 504}


class HTTPClientError(Exception):
    """Base exception for HTTP client errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class HTTPClient:
    """
    Async HTTP client shared by all source fetchers.

    Features:
    - Non-2xx responses raise HTTPClientError with the status code
    - Optional exponential backoff on 429/5xx and timeout/connection errors
    - Context manager for proper resource cleanup

    Example:
        async with HTTPClient(timeout=20.0) as client:
            response = await client.get(
                "https://www.twse.com.tw/rwd/zh/afterTrading/MI_INDEX",
                params={"date": "20240102", "response": "json"},
            )
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 20.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize HTTP client.

        Args:
            retry_config: Configuration for retry behavior. Uses defaults if None.
            timeout: Request timeout in seconds.
            headers: Default headers sent with every request.
            transport: Optional httpx transport (used by tests).
        """
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        """Enter async context manager, create client."""
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers=self._headers,
            transport=self._transport,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager, close client."""
        await self.close()

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform GET request.

        Raises:
            HTTPClientError: On non-2xx status or transport failure
        """
        return await self._request_with_retry("GET", url, params=params, headers=headers)

    async def post_form(
        self,
        url: str,
        data: dict[str, str],
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform a form-encoded POST request.

        Raises:
            HTTPClientError: On non-2xx status or transport failure
        """
        return await self._request_with_retry("POST", url, data=data, headers=headers)

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        attempts = self.retry_config.max_retries + 1

        for attempt in range(attempts):
            try:
                response = await self._client.request(
                    method,
                    url,
                    params=params,
                    data=data,
                    headers=headers,
                )
            except (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError) as e:
                if attempt < self.retry_config.max_retries:
                    backoff = self.retry_config.calculate_backoff(attempt)
                    logger.warning(
                        f"Retryable error {type(e).__name__} for {url}, "
                        f"attempt {attempt + 1}/{attempts}, backing off {backoff:.2f}s"
                    )
                    await asyncio.sleep(backoff)
                    continue
                raise HTTPClientError(
                    f"Request failed after {attempt + 1} attempts: {type(e).__name__}: {e}"
                ) from e
            except httpx.HTTPError as e:
                raise HTTPClientError(f"Request failed: {type(e).__name__}: {e}") from e

            if (
                self.retry_config.is_retryable_status(response.status_code)
                and attempt < self.retry_config.max_retries
            ):
                backoff = self.retry_config.calculate_backoff(attempt)
                logger.warning(
                    f"Retryable status {response.status_code} from {url}, "
                    f"attempt {attempt + 1}/{attempts}, backing off {backoff:.2f}s"
                )
                await asyncio.sleep(backoff)
                continue

            if response.status_code >= 300:
                raise HTTPClientError(
                    f"Request failed with status {response.status_code}",
                    status_code=response.status_code,
                    response_body=response.text[:500],
                )

            return response

        # Loop always returns or raises; kept for type checkers
        raise HTTPClientError(f"Request failed after {attempts} attempts")
