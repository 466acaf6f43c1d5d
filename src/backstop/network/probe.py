"""Active reachability probe using httpx."""

from __future__ import annotations

import httpx

from backstop.core.constants import PROBE_DEFAULT_TIMEOUT_SECONDS
from backstop.core.logging import get_logger

_logger = get_logger("network.probe")


class HttpProbe:
    """Lightweight GET against a health endpoint.

    Calling the probe returns True iff the endpoint answered with a 2xx
    status. Any ``httpx.HTTPError`` (connect failure, timeout, protocol
    error) counts as unreachable.

    Usage::

        probe = HttpProbe("https://api.example.com/health")
        reachable = await probe()
        await probe.close()
    """

    def __init__(
        self,
        url: str,
        timeout: float = PROBE_DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the probe.

        Args:
            url: Endpoint to GET.
            timeout: Per-request timeout in seconds.
            client: Optional shared client. A client passed in is not closed
                by ``close()``.
        """
        self.url = url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
            self._owns_client = True
        return self._client

    async def __call__(self) -> bool:
        client = self._get_client()
        try:
            response = await client.get(
                self.url,
                headers={"Cache-Control": "no-cache"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            _logger.debug("probe_unreachable", url=self.url, error=str(e) or type(e).__name__)
            return False

        if not response.is_success:
            _logger.debug("probe_bad_status", url=self.url, status_code=response.status_code)
        return response.is_success

    async def close(self) -> None:
        """Release the HTTP client if this probe created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpProbe:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
