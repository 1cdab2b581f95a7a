"""HTTP client service for the Jellyfin REST API with retry logic."""

import asyncio
from typing import Any

import httpx
import structlog

AUTH_HEADER = "X-MediaBrowser-Token"


class HttpClientService:
    """HTTP client bound to one media server, with retries and timeouts.

    Reads (GET) are retried with exponential backoff. Writes (POST, DELETE)
    are sent once and their response is returned as-is so the caller can
    judge the status code.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        verify_ssl: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize the HTTP client service.

        Args:
            base_url: Server root, e.g. ``http://jellyfin:8096``
            api_key: API key sent in the ``X-MediaBrowser-Token`` header
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts for reads
            base_delay: Base delay for exponential backoff in seconds
            max_delay: Maximum delay between retries in seconds
            verify_ssl: Whether to verify SSL certificates
            transport: Optional transport override (used by tests)
            logger: Logger to use (defaults to this module's logger)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.log = logger or structlog.stdlib.get_logger(__name__)

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers={
                AUTH_HEADER: api_key,
                "Accept": "application/json",
                "User-Agent": "jellyfin-dedupe/0.1",
            },
            follow_redirects=True,
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            verify=verify_ssl,
            transport=transport,
        )

        self.log.info(
            "HTTP client service initialized",
            base_url=self.base_url,
            timeout=timeout,
            max_retries=max_retries,
            verify_ssl=verify_ssl,
        )

    async def get_json(
        self,
        path: str,
        params: dict[str, str] | None = None,
    ) -> Any:
        """GET a path and decode the JSON body.

        Args:
            path: Path relative to the server root
            params: Optional query parameters

        Returns:
            Decoded JSON document

        Raises:
            httpx.HTTPError: If all retry attempts fail
            ValueError: If the body is not valid JSON
        """
        response = await self.get(path, params=params)
        return response.json()

    async def get(
        self,
        path: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a GET request with retry logic.

        Raises:
            httpx.HTTPStatusError: On a non-retryable status or after all retries
            httpx.RequestError: If the request keeps failing at the transport level
        """
        for attempt in range(self.max_retries + 1):
            try:
                self.log.debug(
                    "Making HTTP GET request",
                    path=path,
                    attempt=attempt + 1,
                    max_attempts=self.max_retries + 1
                )

                response = await self._client.get(path, params=params)
                response.raise_for_status()

                self.log.debug(
                    "HTTP GET request successful",
                    path=path,
                    status_code=response.status_code,
                    content_length=len(response.content)
                )
                return response

            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                self.log.warning(
                    "HTTP GET request failed",
                    path=path,
                    attempt=attempt + 1,
                    error=str(e),
                    error_type=type(e).__name__
                )

                if isinstance(e, httpx.HTTPStatusError):
                    if e.response.status_code == 429:
                        retry_after = e.response.headers.get("retry-after")
                        if retry_after and attempt < self.max_retries:
                            try:
                                delay = float(retry_after)
                            except ValueError:
                                delay = None
                            if delay is not None:
                                self.log.info("Rate limited, waiting", delay=delay)
                                await asyncio.sleep(delay)
                                continue
                    elif 400 <= e.response.status_code < 500:
                        self.log.error("Client error, not retrying", path=path, status_code=e.response.status_code)
                        raise

                if attempt == self.max_retries:
                    self.log.error(
                        "HTTP GET request failed after all retries",
                        path=path,
                        total_attempts=self.max_retries + 1
                    )
                    raise

                delay = min(self.base_delay * (2 ** attempt), self.max_delay)
                self.log.info("Retrying after delay", delay=delay)
                await asyncio.sleep(delay)

        # Unreachable, the loop either returns or raises
        raise RuntimeError("Unexpected end of retry loop")

    async def post(self, path: str, json: Any = None) -> httpx.Response:
        """Send a single POST request and return the response unchecked."""
        self.log.debug("Making HTTP POST request", path=path)
        return await self._client.post(path, json=json)

    async def delete(self, path: str) -> httpx.Response:
        """Send a single DELETE request and return the response unchecked."""
        self.log.debug("Making HTTP DELETE request", path=path)
        return await self._client.delete(path)

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._client.aclose()
        self.log.info("HTTP client closed")

    async def __aenter__(self) -> "HttpClientService":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: type[Exception] | None, exc_val: Exception | None, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
