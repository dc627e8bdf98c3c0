"""
POS Sync Routes Module
======================

API Routes untuk POS Sync application
"""

from .erp import erp_router
from .sync import sync_router
from .company import company_router

__all__ = ['erp_router', 'sync_router', 'company_router']
