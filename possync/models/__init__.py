"""
POS Sync Models Package
=======================

This package contains all database models for the POS → ERP sync system.
Models are organized by domain and functionality.

Domain Structure:
- Core: Base model, enums and database setup
- Company: Tenant configuration and sync schedule
- Sales: Immutable transaction versions and change logs
- Summary: Dimensional aggregates, deltas and affected orders
- Snapshot: ERP consumption watermark
- Sync: Sync batch bookkeeping
- Integration: ERP API call log
"""

# ==================== CORE IMPORTS ====================

from .base import Base, BaseModel, utcnow
from .enums import (
    SyncType,
    ChangeType,
    OrderResult,
    DeltaChangeType,
    DeltaType,
    PullStatus,
    ErpStatus,
    BatchStatus,
)

# ==================== COMPANY DOMAIN ====================

from .company import Company

# ==================== SALES DOMAIN ====================

from .sales import (
    TransactionVersion,
    ChangeLogEntry,
)

# ==================== SUMMARY DOMAIN ====================

from .summary import (
    SUMMARY_KEY_COLUMNS,
    SummaryRecord,
    DeltaRecord,
    AffectedOrder,
)

# ==================== SNAPSHOT & SYNC ====================

from .snapshot import Snapshot
from .sync_batch import SyncBatch

# ==================== INTEGRATION DOMAIN ====================

from .integration import ErpApiLog

__all__ = [
    'Base', 'BaseModel', 'utcnow',
    'SyncType', 'ChangeType', 'OrderResult', 'DeltaChangeType', 'DeltaType',
    'PullStatus', 'ErpStatus', 'BatchStatus',
    'Company',
    'TransactionVersion', 'ChangeLogEntry',
    'SUMMARY_KEY_COLUMNS', 'SummaryRecord', 'DeltaRecord', 'AffectedOrder',
    'Snapshot', 'SyncBatch',
    'ErpApiLog',
]
