"""Audit query and export schemas."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class ExportFormat(str, Enum):
    """Supported audit export encodings."""

    JSON = "json"
    CSV = "csv"


class AuditFilters(BaseModel):
    """Filters applied to the vote audit listing and exports."""

    search: str | None = Field(default=None, description="Substring of title or user id")
    role: Literal["judge", "spectator"] | None = None
    updated_only: bool = False
    recent_only: bool = Field(default=False, description="Only votes from the recent window")
    date: str | None = Field(default=None, description="Substring of the formatted submit time")
    presentation_id: str | None = None
    user_id: str | None = None
