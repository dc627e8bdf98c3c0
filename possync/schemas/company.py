"""
Company Schemas
===============

Schemas untuk Company (tenant) dan jadwal sync-nya
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

from .base import BaseSchema
from .validators import validate_token
from ..models.enums import SyncType

class CompanyScheduleMixin(BaseModel):
    """Field jadwal sync per company"""
    sync_enabled: bool = True
    sync_type: SyncType = SyncType.DAILY
    sync_interval_minutes: Optional[int] = Field(None, gt=0)
    daily_sync_hour: Optional[int] = Field(None, ge=0, le=23)
    daily_sync_minute: Optional[int] = Field(None, ge=0, le=59)
    weekly_sync_day: Optional[int] = Field(None, ge=0, le=6)  # 0=Minggu
    weekly_sync_hour: Optional[int] = Field(None, ge=0, le=23)
    weekly_sync_minute: Optional[int] = Field(None, ge=0, le=59)

class CompanyCreateSchema(CompanyScheduleMixin):
    """Schema untuk create Company"""
    code: str = Field(..., min_length=2, max_length=25)
    name: str = Field(..., min_length=1, max_length=100)
    api_url: str = Field(..., max_length=255)
    api_token: str = Field(..., max_length=255)
    erp_api_token: Optional[str] = Field(None, max_length=255)
    is_active: bool = True

    @field_validator('code')
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator('api_url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(('http://', 'https://')):
            raise ValueError('api_url must start with http:// or https://')
        return v

    @field_validator('erp_api_token')
    @classmethod
    def validate_erp_token(cls, v: Optional[str]) -> Optional[str]:
        return validate_token(v) if v else v

    @model_validator(mode='after')
    def validate_schedule(self):
        if self.sync_type == SyncType.INTERVAL and not self.sync_interval_minutes:
            raise ValueError('sync_interval_minutes is required for INTERVAL sync')
        if self.sync_type == SyncType.DAILY and self.daily_sync_hour is None:
            raise ValueError('daily_sync_hour is required for DAILY sync')
        if self.sync_type == SyncType.WEEKLY and (self.weekly_sync_day is None or self.weekly_sync_hour is None):
            raise ValueError('weekly_sync_day and weekly_sync_hour are required for WEEKLY sync')
        return self

class CompanyUpdateSchema(BaseModel):
    """Schema untuk update Company (partial)"""
    name: Optional[str] = Field(None, max_length=100)
    api_url: Optional[str] = Field(None, max_length=255)
    api_token: Optional[str] = Field(None, max_length=255)
    erp_api_token: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None
    sync_enabled: Optional[bool] = None
    sync_type: Optional[SyncType] = None
    sync_interval_minutes: Optional[int] = Field(None, gt=0)
    daily_sync_hour: Optional[int] = Field(None, ge=0, le=23)
    daily_sync_minute: Optional[int] = Field(None, ge=0, le=59)
    weekly_sync_day: Optional[int] = Field(None, ge=0, le=6)
    weekly_sync_hour: Optional[int] = Field(None, ge=0, le=23)
    weekly_sync_minute: Optional[int] = Field(None, ge=0, le=59)

class CompanySchema(CompanyScheduleMixin, BaseSchema):
    """Schema untuk response Company (tanpa token)"""
    code: str
    name: str
    api_url: str
    is_active: bool
    last_sync_at: Optional[datetime] = None
    last_import_date: Optional[datetime] = None
