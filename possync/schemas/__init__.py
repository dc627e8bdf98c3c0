"""
Schemas Package
===============

Pydantic schemas untuk serialization dan validation
"""

from .base import (
    BaseSchema,
    PaginationSchema,
    DateRangeMixin
)

# ==================== COMPANY ====================
from .company import (
    CompanySchema, CompanyCreateSchema, CompanyUpdateSchema
)

# ==================== SALES DOMAIN ====================
from .sales import (
    PosTransaction
)

# ==================== SUMMARY DOMAIN ====================
from .summary import (
    SummaryRecordSchema, DeltaRecordSchema, AffectedOrderSchema, SnapshotSchema
)

# ==================== ERP PROTOCOL ====================
from .erp import (
    ConfirmPullRequest, ConfirmPullResult, SnapshotCreateRequest
)

# ==================== SYNC ====================
from .sync import (
    SyncRequestSchema, SyncResult, SyncBatchSchema
)

__all__ = [
    'BaseSchema', 'PaginationSchema', 'DateRangeMixin',
    'CompanySchema', 'CompanyCreateSchema', 'CompanyUpdateSchema',
    'PosTransaction',
    'SummaryRecordSchema', 'DeltaRecordSchema', 'AffectedOrderSchema', 'SnapshotSchema',
    'ConfirmPullRequest', 'ConfirmPullResult', 'SnapshotCreateRequest',
    'SyncRequestSchema', 'SyncResult', 'SyncBatchSchema',
]
