"""
Integration Models
==================

Models related to third-party integrations, such as ERP systems.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, Text, JSON

from .base import BaseModel

class ErpApiLog(BaseModel):
    """Model to log every ERP API call made with a company token."""
    __tablename__ = 'erp_api_logs'

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    endpoint = Column(String(100), nullable=False, index=True)
    method = Column(String(10), nullable=False)
    start_date = Column(String(19))
    end_date = Column(String(19))
    filters = Column(JSON)
    status_code = Column(Integer, nullable=False, index=True)
    response_time = Column(Integer)  # milidetik
    record_count = Column(Integer, default=0)
    error_message = Column(Text)

    def __repr__(self):
        return f'<ErpApiLog {self.method} {self.endpoint} - {self.status_code}>'
