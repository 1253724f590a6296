"""Uniform response envelope returned by every tool operation."""

from typing import Any
from pydantic import BaseModel, Field


class ToolResponse(BaseModel):
    """Successful operation result."""
    success: bool = True
    operation: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Failed operation result."""
    success: bool = False
    operation: str
    error: dict[str, Any]
