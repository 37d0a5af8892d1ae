from .base_provider import BaseProvider, HttpProvider
from .custom_api_provider import CustomApiProvider
from .electricity_maps_provider import ElectricityMapsProvider
from .mock_provider import MockProvider

__all__ = [
    "BaseProvider",
    "CustomApiProvider",
    "ElectricityMapsProvider",
    "HttpProvider",
    "MockProvider",
]
