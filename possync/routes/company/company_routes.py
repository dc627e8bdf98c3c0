from fastapi import APIRouter, Depends, status, Query
from typing import Dict, Any, Optional

from ...services import ServiceRegistry
from ...schemas import CompanyCreateSchema, CompanyUpdateSchema
from ...dependencies import get_service_registry, require_admin
from ...responses import APIResponse

router = APIRouter(dependencies=[Depends(require_admin)])

@router.post(
    "",
    response_model=Dict[str, Any],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new company"
)
async def create_company(
    company_data: CompanyCreateSchema,
    services: ServiceRegistry = Depends(get_service_registry)
):
    new_company = await services.company_service.create(company_data.model_dump())
    return APIResponse.success(data=new_company, message="Company created successfully")

@router.get(
    "",
    response_model=Dict[str, Any],
    summary="Get a list of companies"
)
async def get_all_companies(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    is_active: Optional[bool] = Query(None),
    services: ServiceRegistry = Depends(get_service_registry)
):
    result = await services.company_service.list(
        page=page, per_page=per_page, filters={'is_active': is_active}
    )
    return APIResponse.paginated(
        data=result['items'], total=result['pagination']['total'], page=page, per_page=per_page
    )

@router.get(
    "/{company_id}",
    response_model=Dict[str, Any],
    summary="Get a single company by ID"
)
async def get_company_by_id(
    company_id: int,
    services: ServiceRegistry = Depends(get_service_registry)
):
    company = await services.company_service.get_by_id(company_id)
    return APIResponse.success(data=company)

@router.patch(
    "/{company_id}",
    response_model=Dict[str, Any],
    summary="Update a company and its sync schedule"
)
async def update_company(
    company_id: int,
    company_data: CompanyUpdateSchema,
    services: ServiceRegistry = Depends(get_service_registry)
):
    updated_company = await services.company_service.update(
        company_id, company_data.model_dump(exclude_unset=True)
    )
    return APIResponse.success(data=updated_company, message="Company updated successfully")
