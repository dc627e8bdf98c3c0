"""
ERP Routes
==========

Endpoint yang dipanggil ERP: summary, delta, snapshot dan confirm-pull
"""

from .erp_routes import router as erp_router

__all__ = ['erp_router']
