from sqlalchemy import Column, Integer, String, ForeignKey, Text, DateTime, Enum as SAEnum
from sqlalchemy.orm import relationship

from .base import BaseModel
from .enums import ErpStatus

class Snapshot(BaseModel):
    """Watermark data yang sudah (atau akan) ditarik ERP untuk satu company."""
    __tablename__ = 'erp_snapshots'

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    snapshot_date = Column(DateTime, nullable=False)

    # Jendela data yang dicakup snapshot (YYYY-MM-DD)
    data_start_date = Column(String(19), nullable=False)
    data_end_date = Column(String(19), nullable=False)

    record_count = Column(Integer, default=0, nullable=False)
    delta_count = Column(Integer, default=0, nullable=False)
    # Jumlah yang dilaporkan ERP saat confirm
    erp_record_count = Column(Integer)
    erp_delta_count = Column(Integer)

    erp_status = Column(SAEnum(ErpStatus, native_enum=False, length=20),
                        default=ErpStatus.PENDING, nullable=False, index=True)
    erp_pulled_at = Column(DateTime)
    erp_confirmed_at = Column(DateTime)
    erp_error_message = Column(Text)

    company = relationship('Company', back_populates='snapshots')
    deltas = relationship('DeltaRecord', back_populates='snapshot')

    def __repr__(self):
        return f'<Snapshot {self.id} {self.erp_status} @ {self.snapshot_date}>'
