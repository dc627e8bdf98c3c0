"""
Summary Models
==============

Agregat dimensional (SummaryRecord) dan delta yang terlihat oleh ERP.
"""

from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Numeric, Boolean, UniqueConstraint,
    Index, Enum as SAEnum
)
from sqlalchemy.orm import relationship

from .base import BaseModel, utcnow
from .enums import ChangeType, DeltaChangeType, DeltaType

MONEY = Numeric(18, 4)

SUMMARY_KEY_COLUMNS = (
    'sheet_date', 'branch_code', 'accounting_code', 'main_accounting_code',
    'is_main_combo', 'tax_percent', 'is_external', 'branch_id',
)

class SummaryKeyColumnsMixin:
    """Kolom dimensi SummaryKey, dipakai SummaryRecord dan DeltaRecord"""
    sheet_date = Column(String(10), nullable=False, index=True)
    branch_code = Column(String(25), nullable=False)
    accounting_code = Column(String(50), nullable=False, default='')
    main_accounting_code = Column(String(50), nullable=False, default='')
    is_main_combo = Column(Boolean, default=False, nullable=False)
    tax_percent = Column(MONEY, nullable=False, default=0)
    is_external = Column(Boolean, default=False, nullable=False)
    branch_id = Column(Integer, nullable=False)

class SummaryRecord(SummaryKeyColumnsMixin, BaseModel):
    __tablename__ = 'sales_summaries'

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False)

    quantity = Column(MONEY, nullable=False, default=0)
    sub_total = Column(MONEY, nullable=False, default=0)
    tax_total = Column(MONEY, nullable=False, default=0)
    total = Column(MONEY, nullable=False, default=0)

    version = Column(Integer, nullable=False, default=1)
    data_hash = Column(String(64), nullable=False)
    last_modified = Column(DateTime, default=utcnow, nullable=False)
    last_sync_batch_id = Column(Integer, ForeignKey('sync_batches.id'))

    __table_args__ = (
        UniqueConstraint('company_id', *SUMMARY_KEY_COLUMNS, name='uq_sales_summary_key'),
    )

    def __repr__(self):
        return f'<SummaryRecord {self.sheet_date}/{self.branch_code}/{self.accounting_code} v{self.version}>'

class DeltaRecord(SummaryKeyColumnsMixin, BaseModel):
    """Perubahan agregat setelah watermark snapshot; dibaca ERP sebagai delta."""
    __tablename__ = 'sales_summary_deltas'

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)

    change_type = Column(SAEnum(DeltaChangeType, native_enum=False, length=20), nullable=False)
    delta_type = Column(SAEnum(DeltaType, native_enum=False, length=20), nullable=False,
                        default=DeltaType.POST_SNAPSHOT, index=True)

    old_quantity = Column(MONEY)
    old_sub_total = Column(MONEY)
    old_tax_total = Column(MONEY)
    old_total = Column(MONEY)
    new_quantity = Column(MONEY, nullable=False)
    new_sub_total = Column(MONEY, nullable=False)
    new_tax_total = Column(MONEY, nullable=False)
    new_total = Column(MONEY, nullable=False)

    snapshot_id = Column(Integer, ForeignKey('erp_snapshots.id'), nullable=False, index=True)
    processed = Column(Boolean, default=False, nullable=False, index=True)
    processed_at = Column(DateTime)

    sync_batch_id = Column(Integer, ForeignKey('sync_batches.id'), nullable=False)
    changed_at = Column(DateTime, default=utcnow, nullable=False)

    snapshot = relationship('Snapshot', back_populates='deltas')
    affected_orders = relationship('AffectedOrder', back_populates='delta',
                                   cascade='all, delete-orphan', lazy='selectin')

    __table_args__ = (
        Index('ix_sales_summary_delta_company_date', 'company_id', 'sheet_date'),
    )

class AffectedOrder(BaseModel):
    """Order yang menyebabkan sebuah delta, beserta kontribusinya."""
    __tablename__ = 'delta_affected_orders'

    delta_id = Column(Integer, ForeignKey('sales_summary_deltas.id'), nullable=False, index=True)
    order_key = Column(String(64), nullable=False, index=True)
    change_type = Column(SAEnum(ChangeType, native_enum=False, length=20), nullable=False)
    order_date_time = Column(DateTime)
    import_date = Column(DateTime)

    order_quantity = Column(MONEY, nullable=False, default=0)
    order_sub_total = Column(MONEY, nullable=False, default=0)
    order_tax_total = Column(MONEY, nullable=False, default=0)
    order_total = Column(MONEY, nullable=False, default=0)

    old_version = Column(Integer)
    new_version = Column(Integer, nullable=False)
    old_hash = Column(String(64))
    new_hash = Column(String(64), nullable=False)

    delta = relationship('DeltaRecord', back_populates='affected_orders')
