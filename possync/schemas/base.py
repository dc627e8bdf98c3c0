"""
Base Pydantic Schemas
========================

Provides base classes and common functionality for all schemas using Pydantic V2.
"""

from pydantic import BaseModel, ConfigDict, model_validator, Field
from datetime import datetime
from typing import Optional, Any

from .validators import parse_sync_date

class BaseSchema(BaseModel):
    """Base schema dengan common fields dan methods, versi Pydantic V2."""

    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        from_attributes=True,
        extra='ignore',
    )

    @model_validator(mode='before')
    @classmethod
    def strip_whitespace(cls, data: Any) -> Any:
        """Strip whitespace dari string fields sebelum validasi."""
        if isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, str):
                    data[key] = value.strip()
        return data

class PaginationSchema(BaseModel):
    """Schema untuk pagination response, versi Pydantic V2."""
    page: int = Field(gt=0, description="Page must be at least 1")
    per_page: int = Field(gt=0, le=100, description="Per page must be between 1 and 100")
    pages: int
    total: int
    has_next: bool
    has_prev: bool

class DateRangeMixin(BaseModel):
    """Mixin untuk rentang tanggal YYYY-MM-DD atau YYYY-MM-DD HH:MM:SS."""
    start_date: str = Field(..., min_length=10, max_length=19)
    end_date: str = Field(..., min_length=10, max_length=19)

    @model_validator(mode='after')
    def validate_range(self):
        start = parse_sync_date(self.start_date)
        end = parse_sync_date(self.end_date, end_of_day=True)
        if start > end:
            raise ValueError('start_date must not be after end_date')
        return self
