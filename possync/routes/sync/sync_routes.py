"""
Sync Routes
===========

Trigger sync manual dan riwayat SyncBatch (admin token)
"""

from fastapi import APIRouter, Depends, Query, Request
from typing import Dict, Any, Optional

from ...services import ServiceRegistry
from ...schemas import SyncRequestSchema
from ...dependencies import get_service_registry, require_admin
from ...responses import APIResponse

router = APIRouter()

@router.post("", response_model=Dict[str, Any])
async def trigger_sync(
    body: SyncRequestSchema,
    services: ServiceRegistry = Depends(get_service_registry),
    _admin: Optional[str] = Depends(require_admin)
):
    """
    Jalankan sync untuk satu company secara langsung

    **Parameters:**
    - companyId: ID company
    - startDate / endDate: YYYY-MM-DD atau YYYY-MM-DD HH:MM:SS (ImportDate POS)
    """
    result = await services.sync_service.run_sync(body.company_id, body.start_date, body.end_date)
    return APIResponse.success(data=result.model_dump(), message="Sync completed")

@router.get("/history", response_model=Dict[str, Any])
async def get_sync_history(
    company_id: Optional[int] = Query(None, alias="companyId"),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    services: ServiceRegistry = Depends(get_service_registry),
    _admin: Optional[str] = Depends(require_admin)
):
    """Riwayat sync batch, terbaru dulu"""
    history = await services.sync_service.get_history(
        company_id=company_id, status=status, page=page, per_page=per_page
    )
    return APIResponse.paginated(
        data=history['items'],
        total=history['pagination']['total'],
        page=page,
        per_page=per_page
    )

@router.get("/worker-status", response_model=Dict[str, Any])
async def get_worker_status(request: Request):
    """Status scheduler di process ini"""
    scheduler = getattr(request.app.state, 'scheduler', None)
    if scheduler is None:
        return APIResponse.success(data={'running': False, 'enabled': False})
    return APIResponse.success(data={'enabled': True, **scheduler.get_status()})
