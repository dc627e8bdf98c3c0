"""
Integration Domain Services
===========================

Services untuk ERP integration dan POS API client
"""

from .erp_service import ERPService
from .pos_client import PosClient

__all__ = [
    'ERPService',
    'PosClient'
]
