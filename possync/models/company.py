from sqlalchemy import Column, String, Integer, Boolean, DateTime, Enum as SAEnum
from sqlalchemy.orm import relationship

from .base import BaseModel
from .enums import SyncType

class Company(BaseModel):
    """Tenant: satu perusahaan dengan koneksi POS dan jadwal sync sendiri"""
    __tablename__ = 'companies'

    code = Column(String(25), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)

    # Koneksi ke POS API
    api_url = Column(String(255), nullable=False)
    api_token = Column(String(255), nullable=False)

    # Token yang dipakai ERP untuk menarik data perusahaan ini
    erp_api_token = Column(String(255), unique=True, nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False)

    # Jadwal sync
    sync_enabled = Column(Boolean, default=True, nullable=False)
    sync_type = Column(SAEnum(SyncType, native_enum=False, length=20), default=SyncType.DAILY, nullable=False)
    sync_interval_minutes = Column(Integer)
    daily_sync_hour = Column(Integer)
    daily_sync_minute = Column(Integer)
    weekly_sync_day = Column(Integer)  # 0=Minggu ... 6=Sabtu
    weekly_sync_hour = Column(Integer)
    weekly_sync_minute = Column(Integer)

    last_sync_at = Column(DateTime)
    # High-water mark ImportDate untuk incremental sync
    last_import_date = Column(DateTime)

    sync_batches = relationship('SyncBatch', back_populates='company')
    snapshots = relationship('Snapshot', back_populates='company')

    def __repr__(self):
        return f'<Company {self.code}: {self.name}>'
