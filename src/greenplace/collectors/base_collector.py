# src/greenplace/collectors/base_collector.py
"""
This module defines the abstract base class for cluster collectors.
Collectors feed the periodic jobs with the current view of the cluster.
"""

from abc import ABC, abstractmethod
from typing import Any, List


class BaseCollector(ABC):
    """
    Abstract Base Class for all cluster collectors.
    """

    @abstractmethod
    async def collect(self) -> List[Any]:
        """
        Fetch the current state from the source and return a list of
        Pydantic models. Source errors are logged and yield an empty list.
        """
        pass

    async def close(self):
        """
        Clean up resources (e.g., close API clients).
        """
        pass
