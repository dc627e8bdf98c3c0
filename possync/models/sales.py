"""
Sales Models
============

Versi immutable transaksi POS per order dan audit log perubahannya.
"""

from sqlalchemy import (
    Column, Integer, String, ForeignKey, Text, DateTime, Numeric, Boolean, JSON,
    Index, UniqueConstraint, Enum as SAEnum
)
from sqlalchemy.orm import relationship

from .base import BaseModel, utcnow
from .enums import ChangeType

MONEY = Numeric(18, 4)

class TransactionVersion(BaseModel):
    """Satu baris transaksi (line item) dari satu versi order. Append-only."""
    __tablename__ = 'sales_raw'

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False)
    order_key = Column(String(64), nullable=False)
    transaction_id = Column(String(64), nullable=False)

    # Versioning
    version = Column(Integer, nullable=False)
    is_latest = Column(Boolean, default=True, nullable=False)
    content_hash = Column(String(64), nullable=False)

    # Dimensi
    sheet_date = Column(String(10), nullable=False, index=True)
    branch_id = Column(Integer, nullable=False)
    branch_code = Column(String(25), nullable=False)
    branch_type = Column(String(25))
    accounting_code = Column(String(50), nullable=False, default='')
    main_accounting_code = Column(String(50), nullable=False, default='')
    is_main_combo = Column(Boolean, default=False, nullable=False)
    is_external = Column(Boolean, default=False, nullable=False)
    tax_percent = Column(MONEY, nullable=False, default=0)

    # Detail line
    menu_item_id = Column(String(64))
    menu_item_text = Column(String(255))
    order_date_time = Column(DateTime)
    extended_price = Column(MONEY, default=0)
    adjusted_price = Column(MONEY, default=0)
    amount_due = Column(MONEY, default=0)
    order_sub_total = Column(MONEY, default=0)
    order_status = Column(Integer)
    is_invoice = Column(Boolean, default=False)
    header_deleted = Column(Boolean, default=False, nullable=False)
    transaction_deleted = Column(Boolean, default=False, nullable=False)

    # Measures
    quantity = Column(MONEY, nullable=False, default=0)
    line_sub_total = Column(MONEY, nullable=False, default=0)
    line_tax_total = Column(MONEY, nullable=False, default=0)
    line_total = Column(MONEY, nullable=False, default=0)

    import_date = Column(DateTime)
    sync_batch_id = Column(Integer, ForeignKey('sync_batches.id'), nullable=False, index=True)

    __table_args__ = (
        Index('ix_sales_raw_company_order_latest', 'company_id', 'order_key', 'is_latest'),
        Index('ix_sales_raw_company_latest_date', 'company_id', 'is_latest', 'sheet_date'),
        UniqueConstraint('company_id', 'order_key', 'version', 'transaction_id',
                         name='uq_sales_raw_order_version_line'),
    )

    def __repr__(self):
        return f'<TransactionVersion {self.order_key} v{self.version} line {self.transaction_id}>'

class ChangeLogEntry(BaseModel):
    """Audit perubahan satu order dalam satu batch (hanya jika hash berubah)."""
    __tablename__ = 'sales_change_logs'

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    order_key = Column(String(64), nullable=False, index=True)
    change_type = Column(SAEnum(ChangeType, native_enum=False, length=20), nullable=False)

    old_hash = Column(String(64))
    new_hash = Column(String(64), nullable=False)
    old_version = Column(Integer)
    new_version = Column(Integer, nullable=False)

    changed_fields = Column(JSON)  # list nama field yang berubah
    diff_snapshot = Column(JSON)   # payload before/after untuk audit & replay UI

    sync_batch_id = Column(Integer, ForeignKey('sync_batches.id'), nullable=False, index=True)
    detected_at = Column(DateTime, default=utcnow, nullable=False)
    # Batch yang sudah memasukkan perubahan ini ke summary (NULL = belum)
    materialized_batch_id = Column(Integer, index=True)

    sync_batch = relationship('SyncBatch', back_populates='change_logs')

    def __repr__(self):
        return f'<ChangeLogEntry {self.order_key} {self.change_type} v{self.old_version}->v{self.new_version}>'
