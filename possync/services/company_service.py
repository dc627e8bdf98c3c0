"""
Company Service
===============

CRUD untuk Company (tenant) dan query company yang dijadwalkan
"""

from typing import Dict, Any, List

from sqlalchemy import select

from .base import CRUDService
from ..models import Company
from ..schemas.company import CompanySchema, CompanyCreateSchema, CompanyUpdateSchema

TOKEN_IN_USE = 'erp_api_token is already used by another company'

class CompanyService(CRUDService):
    """Service untuk Company management"""

    model_class = Company
    create_schema = CompanyCreateSchema
    update_schema = CompanyUpdateSchema
    response_schema = CompanySchema

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create company baru; code dan erp_api_token harus unik"""
        validated = CompanyCreateSchema.model_validate(data)
        await self._validate_unique_field(Company, 'code', validated.code)
        if validated.erp_api_token:
            await self._validate_unique_field(
                Company, 'erp_api_token', validated.erp_api_token, error_message=TOKEN_IN_USE
            )

        company = await super().create(validated.model_dump())
        self.logger.info(f"Company {company['code']} created")
        return company

    async def update(self, entity_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Partial update; erp_api_token tetap unik antar company"""
        token = data.get('erp_api_token')
        if token:
            await self._validate_unique_field(
                Company, 'erp_api_token', token, exclude_id=entity_id, error_message=TOKEN_IN_USE
            )

        company = await super().update(entity_id, data)
        self.logger.info(f"Company {company['code']} updated: {', '.join(sorted(data))}")
        return company

    async def get_schedulable(self) -> List[Company]:
        """Company aktif dengan sync_enabled"""
        result = await self.db_session.execute(
            select(Company)
            .filter(Company.is_active == True, Company.sync_enabled == True)  # noqa: E712
            .order_by(Company.id)
        )
        return list(result.scalars().all())
