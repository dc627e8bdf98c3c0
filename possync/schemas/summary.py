"""
Summary Domain Schemas
======================

Schemas untuk SummaryRecord, DeltaRecord dan Snapshot yang dibaca ERP
"""

from pydantic import Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from .base import BaseSchema
from ..models.enums import ChangeType, DeltaChangeType, DeltaType, ErpStatus

class SummaryKeySchema(BaseSchema):
    """Dimensi SummaryKey"""
    sheet_date: str
    branch_code: str
    branch_id: int
    accounting_code: str
    main_accounting_code: Optional[str] = None
    is_main_combo: bool = False
    is_external: bool = False
    tax_percent: Decimal = Decimal('0')

    @field_validator('main_accounting_code')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

class SummaryRecordSchema(SummaryKeySchema):
    """Schema untuk SummaryRecord model"""
    quantity: Decimal
    sub_total: Decimal
    tax_total: Decimal
    total: Decimal
    version: int
    last_modified: datetime

class AffectedOrderSchema(BaseSchema):
    """Schema untuk AffectedOrder model"""
    order_key: str
    change_type: ChangeType
    order_date_time: Optional[datetime] = None
    import_date: Optional[datetime] = None
    order_quantity: Decimal
    order_sub_total: Decimal
    order_tax_total: Decimal
    order_total: Decimal
    old_version: Optional[int] = None
    new_version: int
    old_hash: Optional[str] = None
    new_hash: str

class DeltaRecordSchema(SummaryKeySchema):
    """Schema untuk DeltaRecord model"""
    change_type: DeltaChangeType
    delta_type: DeltaType
    old_quantity: Optional[Decimal] = None
    old_sub_total: Optional[Decimal] = None
    old_tax_total: Optional[Decimal] = None
    old_total: Optional[Decimal] = None
    new_quantity: Decimal
    new_sub_total: Decimal
    new_tax_total: Decimal
    new_total: Decimal
    snapshot_id: int
    processed: bool
    processed_at: Optional[datetime] = None
    sync_batch_id: int
    changed_at: datetime
    affected_orders: List[AffectedOrderSchema] = Field(default_factory=list)

class SnapshotSchema(BaseSchema):
    """Schema untuk Snapshot model"""
    company_id: int
    snapshot_date: datetime
    data_start_date: str
    data_end_date: str
    record_count: int = 0
    delta_count: int = 0
    erp_record_count: Optional[int] = None
    erp_delta_count: Optional[int] = None
    erp_status: ErpStatus
    erp_pulled_at: Optional[datetime] = None
    erp_confirmed_at: Optional[datetime] = None
    erp_error_message: Optional[str] = None
