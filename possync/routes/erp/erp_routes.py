"""
ERP Routes
==========

Semua endpoint di sini diautentikasi dengan ERP token milik company,
dan setiap panggilan dicatat ke ErpApiLog
"""

from fastapi import APIRouter, Depends, Query
from typing import Dict, Any, Optional

from ...models import Company
from ...services import ServiceRegistry
from ...schemas import ConfirmPullRequest, ConfirmPullResult, SnapshotCreateRequest
from ...dependencies import get_service_registry, get_erp_company
from ...responses import APIResponse

router = APIRouter()

@router.post("/confirm-pull", response_model=Dict[str, Any])
async def confirm_pull(
    body: ConfirmPullRequest,
    company: Company = Depends(get_erp_company),
    services: ServiceRegistry = Depends(get_service_registry)
):
    """
    Konfirmasi bahwa ERP sudah selesai menarik data snapshot

    **Returns:**
    - SUCCESS: snapshot CONFIRMED + id snapshot PENDING berikutnya
    - FAILED: snapshot menjadi FAILED (masih bisa dikonfirmasi ulang), error dicatat
    """
    erp = services.erp_service
    async with erp.track_call(company.id, '/api/erp/confirm-pull', 'POST',
                              filters=body.model_dump(mode='json')) as entry:
        result = await erp.confirm_pull(
            company,
            snapshot_id=body.snapshot_id,
            status=body.status,
            record_count=body.record_count,
            delta_count=body.delta_count,
            error_message=body.error_message,
        )
        entry['record_count'] = result.get('processed_delta_count', 0)

    data = ConfirmPullResult.model_validate(result).to_response()
    if result['status'] == 'FAILED':
        return APIResponse.success(data=data, message="Pull failure recorded")
    return APIResponse.success(data=data, message="Pull confirmed")

@router.get("/sales-summary", response_model=Dict[str, Any])
async def get_sales_summary(
    start_date: str = Query(..., alias="startDate"),
    end_date: str = Query(..., alias="endDate"),
    branch_code: Optional[str] = Query(None, alias="branchCode"),
    accounting_code: Optional[str] = Query(None, alias="accountingCode"),
    after_snapshot_id: Optional[int] = Query(None, alias="afterSnapshotId"),
    company: Company = Depends(get_erp_company),
    services: ServiceRegistry = Depends(get_service_registry)
):
    """Summary records per sheet date beserta snapshot aktif dan delta yang belum diproses"""
    erp = services.erp_service
    filters = {
        'branch_code': branch_code,
        'accounting_code': accounting_code,
        'after_snapshot_id': after_snapshot_id,
    }
    async with erp.track_call(company.id, '/api/erp/sales-summary', 'GET', start_date, end_date,
                              filters={k: v for k, v in filters.items() if v is not None}) as entry:
        data = await erp.get_sales_summary(
            company, start_date, end_date,
            branch_code=branch_code,
            accounting_code=accounting_code,
            after_snapshot_id=after_snapshot_id,
        )
        entry['record_count'] = len(data['records'])

    return APIResponse.success(data=data)

@router.get("/deltas", response_model=Dict[str, Any])
async def get_deltas(
    start_date: str = Query(..., alias="startDate"),
    end_date: str = Query(..., alias="endDate"),
    delta_type: str = Query("POST_SNAPSHOT", alias="deltaType"),
    processed: Optional[bool] = Query(None),
    change_type: Optional[str] = Query(None, alias="changeType"),
    branch_code: Optional[str] = Query(None, alias="branchCode"),
    accounting_code: Optional[str] = Query(None, alias="accountingCode"),
    company: Company = Depends(get_erp_company),
    services: ServiceRegistry = Depends(get_service_registry)
):
    """Delta records dengan statistik dan order keys yang terdampak"""
    erp = services.erp_service
    filters = {
        'delta_type': delta_type,
        'processed': processed,
        'change_type': change_type,
        'branch_code': branch_code,
        'accounting_code': accounting_code,
    }
    async with erp.track_call(company.id, '/api/erp/deltas', 'GET', start_date, end_date,
                              filters={k: v for k, v in filters.items() if v is not None}) as entry:
        data = await erp.get_deltas(company, start_date, end_date, **filters)
        entry['record_count'] = len(data['deltas'])

    return APIResponse.success(data=data)

@router.post("/snapshot", response_model=Dict[str, Any])
async def create_snapshot(
    body: SnapshotCreateRequest,
    company: Company = Depends(get_erp_company),
    services: ServiceRegistry = Depends(get_service_registry)
):
    """Buat snapshot PENDING baru secara manual"""
    erp = services.erp_service
    async with erp.track_call(company.id, '/api/erp/snapshot', 'POST',
                              body.data_start_date, body.data_end_date) as entry:
        snapshot = await erp.create_snapshot(company, body.data_start_date, body.data_end_date)
        entry['record_count'] = snapshot.get('record_count') or 0

    return APIResponse.success(data=snapshot, message="Snapshot created")
