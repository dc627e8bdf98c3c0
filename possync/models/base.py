from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone

def utcnow() -> datetime:
    """Naive UTC timestamp; semua kolom DateTime disimpan dalam UTC tanpa tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

Base = declarative_base()

# Kolom bersama untuk semua tabel sync (abstract, tidak dibuat sebagai tabel)
class BaseModel(Base):
    __abstract__ = True
    id = Column(Integer, primary_key=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
