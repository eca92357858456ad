"""REST API data source.

Fetches plots from the catalog backend over HTTP using httpx and
normalizes the raw records (snake_case or camelCase) into Plot models.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from ..analysis.ranker import PlotFilters
from ..config import Settings, config
from ..models.plot import Plot, normalize_plots
from ..state.query_params import filters_to_query
from .base import DataSource, DataSourceError, RateLimitError

logger = logging.getLogger(__name__)


class ApiSource(DataSource):
    """Plots from the catalog REST API.

    Endpoints:
        GET {base_url}/api/plots           list, filter keys as query params
        GET {base_url}/api/plots/{id}      single plot

    Example:
        source = ApiSource(base_url="https://landmap.example.com")
        plots = await source.fetch_plots(PlotFilters(city="Hadera"))
        await source.close()
    """

    name = "api"
    priority = 1

    MAX_RETRIES = 3
    BACKOFF_FACTOR = 2.0

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the API source.

        Args:
            base_url: API root (defaults to settings.api_url)
            timeout: Request timeout in seconds (defaults to settings.api_timeout)
            settings: Optional Settings instance
            transport: Optional httpx transport (used to inject a mock in tests)
        """
        settings = settings or config
        self.base_url = (base_url or settings.api_url or "").rstrip("/")
        self.timeout = timeout or settings.api_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def is_available(self) -> bool:
        return bool(self.base_url)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def _request(
        self,
        path: str,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> Optional[httpx.Response]:
        """GET with retry on timeouts.

        Returns None for HTTP 404 when ``allow_not_found`` is set.

        Raises:
            RateLimitError: On HTTP 429
            DataSourceError: On other HTTP or transport errors
        """
        if not self.is_available():
            raise DataSourceError(self.name, "No API URL configured")

        client = await self._get_client()
        for attempt in range(self.MAX_RETRIES):
            try:
                response = await client.get(path, **kwargs)
                if response.status_code == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        self.name,
                        int(retry_after) if retry_after and retry_after.isdigit() else None,
                    )
                if response.status_code == 404 and allow_not_found:
                    return None
                response.raise_for_status()
                return response

            except httpx.TimeoutException:
                if attempt < self.MAX_RETRIES - 1:
                    await asyncio.sleep(self.BACKOFF_FACTOR**attempt)
                    continue
                raise DataSourceError(self.name, "Request timeout after retries")

            except httpx.HTTPStatusError as e:
                raise DataSourceError(self.name, f"HTTP error: {e.response.status_code}")

            except httpx.HTTPError as e:
                raise DataSourceError(self.name, f"Request failed: {e}")

        raise DataSourceError(self.name, "Max retries exceeded")

    @staticmethod
    def _records(payload: Any) -> list[dict]:
        """Extract the record list from a bare list or an envelope object."""
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for key in ("plots", "data", "items"):
                if isinstance(payload.get(key), list):
                    return payload[key]
        raise ValueError("Unexpected response shape")

    async def fetch_plots(self, filters: Optional[PlotFilters] = None) -> list[Plot]:
        params = filters_to_query(filters) if filters else {}
        response = await self._request("/api/plots", params=params)
        try:
            records = self._records(response.json())
        except ValueError as e:
            raise DataSourceError(self.name, f"Invalid response: {e}")

        plots = normalize_plots(r for r in records if isinstance(r, dict))
        logger.info(f"Fetched {len(plots)} plots from {self.base_url}")
        return plots

    async def get_plot(self, plot_id: str) -> Optional[Plot]:
        response = await self._request(f"/api/plots/{plot_id}", allow_not_found=True)
        if response is None:
            return None
        try:
            payload = response.json()
        except ValueError as e:
            raise DataSourceError(self.name, f"Invalid response: {e}")
        if isinstance(payload, dict) and isinstance(payload.get("plot"), dict):
            payload = payload["plot"]
        plots = normalize_plots([payload]) if isinstance(payload, dict) else []
        return plots[0] if plots else None

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
