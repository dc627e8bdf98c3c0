"""
Custom Validators
=================

Custom validation functions untuk input tanggal dan token
"""

from datetime import datetime, time
import re

DATE_FORMAT = '%Y-%m-%d'
DATETIME_FORMAT = '%Y-%m-%d %H:%M:%S'

_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')

def parse_sync_date(value: str, end_of_day: bool = False) -> datetime:
    """Parse YYYY-MM-DD atau YYYY-MM-DD HH:MM:SS.

    Tanggal tanpa jam dianggap awal hari, atau akhir hari (23:59:59) jika
    ``end_of_day`` diset.
    """
    value = (value or '').strip()
    if _DATE_RE.match(value):
        day = datetime.strptime(value, DATE_FORMAT)
        if end_of_day:
            return datetime.combine(day.date(), time(23, 59, 59))
        return day
    try:
        return datetime.strptime(value, DATETIME_FORMAT)
    except ValueError:
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD or YYYY-MM-DD HH:MM:SS")

def validate_sheet_date(value: str) -> str:
    """Validate format SheetDate (YYYY-MM-DD)"""
    if not _DATE_RE.match(value):
        raise ValueError('Date must be in YYYY-MM-DD format')
    datetime.strptime(value, DATE_FORMAT)
    return value

def validate_token(value: str) -> str:
    """Token API minimal 16 karakter tanpa spasi"""
    if len(value) < 16 or ' ' in value:
        raise ValueError('Token must be at least 16 characters without spaces')
    return value
