"""
API Dependencies
================

FastAPI dependencies untuk POS Sync API.
"""

import secrets
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from .services import ServiceRegistry, create_service_registry
from .database import get_db_session
from .config import settings
from .models import Company
from .services.exceptions import AuthenticationError, AuthorizationError

# Security
security = HTTPBearer(auto_error=False)

# Dependency untuk get service registry
async def get_service_registry(
    request: Request,
    db_session = Depends(get_db_session)
) -> ServiceRegistry:
    """Get service registry per request"""
    return create_service_registry(
        db_session=db_session,
        config=settings.model_dump(),
        pos_fetcher=getattr(request.app.state, 'pos_fetcher', None)
    )

# Dependency untuk ERP: token bearer milik satu company
async def get_erp_company(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: ServiceRegistry = Depends(get_service_registry)
) -> Company:
    """Company pemilik ERP token"""
    if credentials is None:
        raise AuthenticationError("Missing ERP API token")
    return await services.erp_service.authenticate(credentials.credentials)

# Dependency untuk endpoint admin (manual sync, history)
async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[str]:
    """Cek ADMIN_API_TOKEN. Tanpa token terkonfigurasi, endpoint admin terbuka."""
    if not settings.ADMIN_API_TOKEN:
        return None
    if credentials is None:
        raise AuthenticationError("Missing admin token")
    if not secrets.compare_digest(credentials.credentials, settings.ADMIN_API_TOKEN):
        raise AuthorizationError("Invalid admin token")
    return 'admin'
