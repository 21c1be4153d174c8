"""Family domain model."""

from pydantic import BaseModel, Field


class Family(BaseModel):
    """Family (tenant) data transfer object."""

    id: str = Field(..., description="Unique family ID from database")
    name: str = Field(..., description="Family display name")
    show_reset_button: bool = Field(default=True, description="Whether regular members may undo ledger entries")
