# src/greenplace/models/node.py

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class NodeUsage(BaseModel):
    """
    Pydantic model for a cluster node as seen by the sustainability aggregator.

    Attributes:
        name: Node name
        labels: Node labels, used to resolve the node's canonical region
        energy_kwh: Measured energy use over the reporting window. When absent
            the configured per-node baseline estimate is used instead.
        instance_type: Instance type (e.g., 'm5.large'), informational
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., description="Node name")
    labels: Dict[str, str] = Field(default_factory=dict, description="Node labels")
    energy_kwh: Optional[float] = Field(None, ge=0, description="Energy use in kWh")
    instance_type: Optional[str] = Field(None, description="Instance type")
