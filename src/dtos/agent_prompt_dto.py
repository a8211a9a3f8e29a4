"""
DTOs for agent prompt operations.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AgentPromptCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=255)
    prompt: str = Field(..., min_length=1)
    status: Literal["draft", "active"] = "draft"
    max_credits: int | None = Field(
        default=None, ge=0, description="Credit ceiling for one run; None for no limit"
    )


class AgentPromptRead(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int
    title: str
    prompt: str
    status: str
    max_credits: int | None
    last_run: dict | None
    created_at: datetime
    updated_at: datetime
