"""
Sync Routes
===========

Endpoint admin untuk trigger sync manual, riwayat batch dan status scheduler
"""

from .sync_routes import router as sync_router

__all__ = ['sync_router']
