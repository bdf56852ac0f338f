from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CustomerSummary(BaseModel):
    """Flat customer record handed to the model as context."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    first_name: str = Field(serialization_alias="firstName")
    last_name: str = Field(serialization_alias="lastName")
    email: Optional[str] = None
