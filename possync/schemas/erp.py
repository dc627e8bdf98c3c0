"""
ERP Protocol Schemas
====================

Request body untuk endpoint ERP (confirm-pull dan snapshot manual)
"""

from pydantic import BaseModel, AliasChoices, ConfigDict, Field, model_validator
from typing import Optional

from ..models.enums import PullStatus
from .validators import parse_sync_date

class ConfirmPullRequest(BaseModel):
    """Body POST /api/erp/confirm-pull"""
    model_config = ConfigDict(populate_by_name=True)

    snapshot_id: int = Field(..., gt=0, validation_alias=AliasChoices('snapshotId', 'snapshot_id'))
    status: PullStatus
    record_count: Optional[int] = Field(None, ge=0, validation_alias=AliasChoices('recordCount', 'record_count'))
    delta_count: Optional[int] = Field(None, ge=0, validation_alias=AliasChoices('deltaCount', 'delta_count'))
    error_message: Optional[str] = Field(
        None, max_length=2000, validation_alias=AliasChoices('errorMessage', 'error_message'))

class SnapshotCreateRequest(BaseModel):
    """Body POST /api/erp/snapshot"""
    model_config = ConfigDict(populate_by_name=True)

    data_start_date: str = Field(..., min_length=10, max_length=19,
                                 validation_alias=AliasChoices('dataStartDate', 'data_start_date'))
    data_end_date: str = Field(..., min_length=10, max_length=19,
                               validation_alias=AliasChoices('dataEndDate', 'data_end_date'))

    @model_validator(mode='after')
    def validate_window(self):
        if parse_sync_date(self.data_start_date) > parse_sync_date(self.data_end_date, end_of_day=True):
            raise ValueError('dataStartDate must not be after dataEndDate')
        return self

class ConfirmPullResult(BaseModel):
    """Response POST /api/erp/confirm-pull (camelCase, field kosong dibuang)"""
    model_config = ConfigDict(populate_by_name=True)

    status: str
    snapshot_id: int = Field(..., serialization_alias='snapshotId')
    next_snapshot_id: Optional[int] = Field(None, serialization_alias='nextSnapshotId')
    processed_delta_count: Optional[int] = Field(None, serialization_alias='processedDeltaCount')
    confirmed_at: Optional[str] = Field(None, serialization_alias='confirmedAt')
    error_message: Optional[str] = Field(None, serialization_alias='errorMessage')

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
