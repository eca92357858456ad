"""Abstract base class for plot data sources.

This module defines the DataSource abstract base class that all plot data
sources implement. The plugin architecture lets the REST API and the bundled
demo dataset be used interchangeably through a unified interface.

Example usage:
    class MySource(DataSource):
        name = "my_source"
        priority = 10

        async def fetch_plots(self, filters=None):
            # Implementation here
            pass

        async def get_plot(self, plot_id):
            # Implementation here
            pass

        def is_available(self):
            return True
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..analysis.ranker import PlotFilters
from ..models.plot import Plot


class DataSource(ABC):
    """Abstract base class for plot data sources.

    Attributes:
        name: Unique identifier for this data source (e.g., "api", "demo")
        priority: Lower values = higher priority. Used to determine which source
                  to try first when multiple sources are available.
    """

    name: str
    priority: int

    @abstractmethod
    async def fetch_plots(self, filters: Optional[PlotFilters] = None) -> list[Plot]:
        """Fetch plots matching the given filters.

        Args:
            filters: Optional filter state; sources may apply it server-side

        Returns:
            List of canonical Plot objects

        Raises:
            DataSourceError: If the source is unavailable or request fails
        """
        pass

    @abstractmethod
    async def get_plot(self, plot_id: str) -> Optional[Plot]:
        """Get a single plot.

        Args:
            plot_id: Plot identifier

        Returns:
            Plot, or None if not found

        Raises:
            DataSourceError: If the source is unavailable or request fails
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this data source is configured and available.

        Returns:
            True if the source is ready to use, False otherwise
        """
        pass


class DataSourceError(Exception):
    """Base exception for data source errors.

    Attributes:
        source: Name of the data source that raised the error
        message: Error description
    """

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class RateLimitError(DataSourceError):
    """Raised when a data source rate limit is exceeded."""

    def __init__(self, source: str, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        message = "Rate limit exceeded"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(source, message)
