"""Identifier validation schemas."""

from pydantic import BaseModel, Field


class ValidIdsRequest(BaseModel):
    ids: list[str] = Field(default_factory=list)
