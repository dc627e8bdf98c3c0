"""
Sync Domain Schemas
===================

Schemas untuk trigger sync manual, hasil sync dan riwayat SyncBatch
"""

from pydantic import BaseModel, AliasChoices, ConfigDict, Field
from typing import Optional
from datetime import datetime

from .base import BaseSchema, DateRangeMixin
from ..models.enums import BatchStatus

class SyncRequestSchema(DateRangeMixin):
    """Body POST /api/sync"""
    model_config = ConfigDict(populate_by_name=True)

    company_id: int = Field(..., gt=0, validation_alias=AliasChoices('companyId', 'company_id'))
    start_date: str = Field(..., min_length=10, max_length=19,
                            validation_alias=AliasChoices('startDate', 'start_date'))
    end_date: str = Field(..., min_length=10, max_length=19,
                          validation_alias=AliasChoices('endDate', 'end_date'))

class SyncResult(BaseModel):
    """Hasil satu eksekusi sync"""
    batch_id: int
    total_records: int = 0
    new_records: int = 0
    updated_records: int = 0
    unchanged_records: int = 0
    duration: int = 0  # milidetik

class SyncBatchSchema(BaseSchema):
    """Schema untuk SyncBatch model"""
    company_id: int
    start_date: str
    end_date: str
    status: BatchStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration: Optional[int] = None

    total_records: int = 0
    new_records: int = 0
    updated_records: int = 0
    unchanged_records: int = 0

    error_message: Optional[str] = None
    error_details: Optional[dict] = None
