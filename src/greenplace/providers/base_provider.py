# src/greenplace/providers/base_provider.py
"""
This module defines the abstract base class for all carbon data providers.
Every provider answers the same two questions for a canonical region (what is
the intensity now, and what will it be over the next 24 hours) and reports
failure with a typed ProviderError instead of leaking transport exceptions.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..core.exceptions import InvalidProviderResponse, ProviderRateLimited, ProviderUnreachable
from ..models.carbon import CarbonForecast, CarbonSample

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class BaseProvider(ABC):
    """
    Abstract Base Class for all carbon-intensity providers.
    """

    name: str = "base"

    @abstractmethod
    async def fetch_current(self, region: str) -> CarbonSample:
        """
        Return the latest carbon sample for a canonical region.

        Raises:
            ProviderError: any of its subclasses on failure.
        """
        pass

    @abstractmethod
    async def fetch_forecast(self, region: str) -> CarbonForecast:
        """
        Return the 24-hour forecast for a canonical region.

        Raises:
            ProviderError: any of its subclasses on failure.
        """
        pass

    async def close(self):
        """
        Clean up resources (e.g., close HTTP sessions or API clients).
        """
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


class HttpProvider(BaseProvider):
    """Shared plumbing for providers backed by a JSON-over-HTTP API."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise ProviderUnreachable(self.name, f"request to {path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderUnreachable(self.name, f"request to {path} failed: {e}") from e

        if response.status_code == 429:
            raise ProviderRateLimited(self.name, f"rate limited on {path}")
        if response.status_code >= 500:
            raise ProviderUnreachable(self.name, f"upstream error {response.status_code} on {path}")
        if response.status_code >= 400:
            raise InvalidProviderResponse(self.name, f"rejected request {path} with status {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise InvalidProviderResponse(self.name, f"non-JSON body from {path}") from e

    def _validate(self, model: Type[PayloadT], payload: Any) -> PayloadT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.debug("Payload rejected by %s schema: %s", model.__name__, payload)
            raise InvalidProviderResponse(
                self.name, f"payload does not match {model.__name__}: {e.error_count()} error(s)"
            ) from e

    async def close(self):
        await self._client.aclose()
