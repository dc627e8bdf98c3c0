from sqlalchemy import Column, Integer, String, ForeignKey, Text, DateTime, JSON, Enum as SAEnum
from sqlalchemy.orm import relationship

from .base import BaseModel, utcnow
from .enums import BatchStatus

class SyncBatch(BaseModel):
    """Satu eksekusi pipeline sync untuk satu company dan satu rentang tanggal."""
    __tablename__ = 'sync_batches'

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    start_date = Column(String(19), nullable=False)
    end_date = Column(String(19), nullable=False)

    status = Column(SAEnum(BatchStatus, native_enum=False, length=20),
                    default=BatchStatus.RUNNING, nullable=False, index=True)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime)
    duration = Column(Integer)  # milidetik

    total_records = Column(Integer, default=0, nullable=False)
    new_records = Column(Integer, default=0, nullable=False)
    updated_records = Column(Integer, default=0, nullable=False)
    unchanged_records = Column(Integer, default=0, nullable=False)

    error_message = Column(Text)
    error_details = Column(JSON)

    company = relationship('Company', back_populates='sync_batches')
    change_logs = relationship('ChangeLogEntry', back_populates='sync_batch')

    def __repr__(self):
        return f'<SyncBatch {self.id} {self.status}>'
