# src/greenplace/models/region_mapping.py

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RegionMapping(BaseModel):
    """
    Pydantic model for one row of the topology table.

    Attributes:
        cloud_provider: Short vendor key as detected from node labels (e.g. "aws", "gcp")
        region_id: The cloud provider's region identifier (e.g., "us-east-1", "europe-west9")
        electricity_maps_zone: The corresponding Electricity Maps zone code (e.g., "US-MIDA-PJM", "FR")
        location_description: Optional human-readable description of the location
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    cloud_provider: str = Field(..., min_length=1, description="Cloud provider key")
    region_id: str = Field(..., min_length=1, description="Cloud region identifier")
    electricity_maps_zone: str = Field(..., min_length=1, description="Electricity Maps zone code")
    location_description: Optional[str] = Field(None, description="Location description")

    @property
    def canonical_region(self) -> str:
        """Vendor-qualified identifier used as the cache and directory key."""
        return f"{self.cloud_provider.lower()}:{self.region_id.lower()}"
