"""
Request schemas for v1 API endpoints.
"""
from pydantic import BaseModel, ConfigDict, Field


class TargetAddressRequest(BaseModel):
    """Body of the Guardian check and Sentinel watch requests."""
    model_config = ConfigDict(populate_by_name=True)

    target_address: str = Field(..., alias="targetAddress", min_length=1, description="Address to check or watch")
