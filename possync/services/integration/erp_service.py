"""
ERP Integration Service
=======================

Permukaan baca ERP (sales summary, deltas), snapshot manual, confirm-pull
dan log setiap panggilan API yang diautentikasi
"""

import time
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import BaseService
from ..exceptions import AuthenticationError, PosSyncException, ValidationError
from ..sync.snapshot_service import SnapshotService
from ...models import Company, SummaryRecord, DeltaRecord, ErpApiLog, DeltaType, DeltaChangeType
from ...schemas.summary import SummaryRecordSchema, DeltaRecordSchema, SnapshotSchema
from ...schemas.validators import validate_sheet_date

ZERO = Decimal('0')


def _change(new: Optional[Decimal], old: Optional[Decimal]) -> Decimal:
    return (new or ZERO) - (old or ZERO)


class ERPService(BaseService):
    """Service untuk ERP yang menarik data summary dan delta"""

    def __init__(self, db_session: AsyncSession, current_user: str = None,
                 snapshot_service: SnapshotService = None):
        super().__init__(db_session, current_user)
        self.snapshot_service = snapshot_service or SnapshotService(db_session, current_user)

    # ==================== AUTH & LOGGING ====================

    async def authenticate(self, token: str) -> Company:
        """Company aktif pemilik ERP token"""
        if not token:
            raise AuthenticationError("Missing ERP API token")
        result = await self.db_session.execute(
            select(Company).filter(Company.erp_api_token == token, Company.is_active == True)  # noqa: E712
        )
        company = result.scalars().first()
        if not company:
            raise AuthenticationError("Invalid ERP API token")
        return company

    @asynccontextmanager
    async def track_call(self, company_id: int, endpoint: str, method: str,
                         start_date: str = '', end_date: str = '', filters: Dict[str, Any] = None):
        """Catat satu panggilan ERP ke ErpApiLog, termasuk yang gagal.

        Blok di dalamnya boleh mengisi ``entry['record_count']``.
        """
        started = time.monotonic()
        entry = {'status_code': 200, 'record_count': 0, 'error_message': None}
        try:
            yield entry
        except PosSyncException as e:
            entry['status_code'] = e.http_status
            entry['error_message'] = e.message
            raise
        except Exception as e:
            entry['status_code'] = 500
            entry['error_message'] = str(e)
            raise
        finally:
            await self._write_api_log(
                company_id=company_id,
                endpoint=endpoint,
                method=method,
                start_date=start_date or '',
                end_date=end_date or '',
                filters=filters or None,
                status_code=entry['status_code'],
                response_time=int((time.monotonic() - started) * 1000),
                record_count=entry['record_count'],
                error_message=entry['error_message'],
            )

    async def _write_api_log(self, **values):
        try:
            self.db_session.add(ErpApiLog(**values))
            await self.db_session.commit()
        except SQLAlchemyError as e:
            # Kegagalan log tidak boleh mengubah respons ERP
            await self.db_session.rollback()
            self.logger.error(f"Failed to write ERP API log for {values.get('endpoint')}: {str(e)}")

    # ==================== READ SURFACES ====================

    def _validate_window(self, start_date: str, end_date: str):
        try:
            validate_sheet_date(start_date)
            validate_sheet_date(end_date)
        except ValueError:
            raise ValidationError('Invalid date format. Use YYYY-MM-DD', 'start_date')
        if start_date > end_date:
            raise ValidationError('startDate must not be after endDate', 'start_date')

    async def get_sales_summary(self, company: Company, start_date: str, end_date: str,
                                branch_code: str = None, accounting_code: str = None,
                                after_snapshot_id: int = None) -> Dict[str, Any]:
        """Summary records dalam jendela tanggal + snapshot PENDING + delta yang belum diproses"""
        self._validate_window(start_date, end_date)

        query = select(SummaryRecord).filter(
            SummaryRecord.company_id == company.id,
            SummaryRecord.sheet_date >= start_date,
            SummaryRecord.sheet_date <= end_date,
        )
        query = await self._apply_filters(query, SummaryRecord, {
            'branch_code': branch_code,
            'accounting_code': accounting_code,
        })
        query = query.order_by(SummaryRecord.sheet_date, SummaryRecord.branch_code, SummaryRecord.accounting_code)
        records = list((await self.db_session.execute(query)).scalars().all())

        totals = {
            'total_quantity': sum((r.quantity for r in records), ZERO),
            'total_sub_total': sum((r.sub_total for r in records), ZERO),
            'total_tax_total': sum((r.tax_total for r in records), ZERO),
            'total_amount': sum((r.total for r in records), ZERO),
            'record_count': len(records),
        }

        pending = await self.snapshot_service.get_pending_snapshot(company.id)

        deltas: List[DeltaRecord] = []
        if after_snapshot_id is not None:
            snapshot = await self.snapshot_service.get_company_snapshot(company.id, after_snapshot_id)
            if snapshot is not None:
                delta_query = select(DeltaRecord).filter(
                    DeltaRecord.company_id == company.id,
                    DeltaRecord.sheet_date >= start_date,
                    DeltaRecord.sheet_date <= end_date,
                    DeltaRecord.processed == False,  # noqa: E712
                    DeltaRecord.delta_type == DeltaType.POST_SNAPSHOT,
                )
                delta_query = await self._apply_filters(delta_query, DeltaRecord, {
                    'branch_code': branch_code,
                    'accounting_code': accounting_code,
                })
                delta_query = delta_query.order_by(DeltaRecord.changed_at.desc(), DeltaRecord.id.desc())
                deltas = list((await self.db_session.execute(delta_query)).scalars().all())

        return {
            'company': {'code': company.code, 'name': company.name},
            'date_range': {'start_date': start_date, 'end_date': end_date},
            'filters': {'branch_code': branch_code, 'accounting_code': accounting_code},
            'snapshot': SnapshotSchema.model_validate(pending).model_dump() if pending else None,
            'totals': totals,
            'records': [SummaryRecordSchema.model_validate(r).model_dump() for r in records],
            'deltas': [self._delta_payload(d) for d in deltas],
            'has_deltas': bool(deltas),
        }

    async def get_deltas(self, company: Company, start_date: str, end_date: str,
                         delta_type: str = DeltaType.POST_SNAPSHOT.value, processed: bool = None,
                         change_type: str = None, branch_code: str = None,
                         accounting_code: str = None) -> Dict[str, Any]:
        """Delta records dengan statistik dan affected order keys"""
        self._validate_window(start_date, end_date)
        try:
            delta_type = DeltaType(delta_type)
        except ValueError:
            raise ValidationError('Invalid deltaType. Use PRE_SNAPSHOT or POST_SNAPSHOT', 'delta_type')
        if change_type is not None:
            try:
                change_type = DeltaChangeType(change_type)
            except ValueError:
                raise ValidationError('Invalid changeType. Use INSERT or UPDATE', 'change_type')

        query = select(DeltaRecord).filter(
            DeltaRecord.company_id == company.id,
            DeltaRecord.sheet_date >= start_date,
            DeltaRecord.sheet_date <= end_date,
        )
        query = await self._apply_filters(query, DeltaRecord, {
            'delta_type': delta_type,
            'processed': processed,
            'change_type': change_type,
            'branch_code': branch_code,
            'accounting_code': accounting_code,
        })
        query = query.order_by(DeltaRecord.sheet_date, DeltaRecord.branch_code,
                               DeltaRecord.accounting_code, DeltaRecord.id)
        deltas = list((await self.db_session.execute(query)).scalars().all())

        statistics = {
            'total_deltas': len(deltas),
            'by_change_type': {t.value: 0 for t in DeltaChangeType},
            'total_quantity_change': ZERO,
            'total_sub_total_change': ZERO,
            'total_tax_total_change': ZERO,
            'total_amount_change': ZERO,
        }
        payloads = []
        for delta in deltas:
            payload = self._delta_payload(delta)
            statistics['by_change_type'][DeltaChangeType(delta.change_type).value] += 1
            statistics['total_quantity_change'] += payload['changes']['quantity']
            statistics['total_sub_total_change'] += payload['changes']['sub_total']
            statistics['total_tax_total_change'] += payload['changes']['tax_total']
            statistics['total_amount_change'] += payload['changes']['total']
            payloads.append(payload)

        return {
            'company': {'code': company.code, 'name': company.name},
            'date_range': {'start_date': start_date, 'end_date': end_date},
            'delta_type': delta_type.value,
            'filters': {
                'processed': processed,
                'change_type': change_type.value if change_type else None,
                'branch_code': branch_code,
                'accounting_code': accounting_code,
            },
            'statistics': statistics,
            'deltas': payloads,
        }

    def _delta_payload(self, delta: DeltaRecord) -> Dict[str, Any]:
        payload = DeltaRecordSchema.model_validate(delta).model_dump(exclude={'affected_orders'})
        payload['changes'] = {
            'quantity': _change(delta.new_quantity, delta.old_quantity),
            'sub_total': _change(delta.new_sub_total, delta.old_sub_total),
            'tax_total': _change(delta.new_tax_total, delta.old_tax_total),
            'total': _change(delta.new_total, delta.old_total),
        }
        payload['affected_order_keys'] = [order.order_key for order in delta.affected_orders]
        return payload

    # ==================== SNAPSHOT PROTOCOL ====================

    async def create_snapshot(self, company: Company, data_start_date: str, data_end_date: str) -> Dict[str, Any]:
        snapshot = await self.snapshot_service.create_snapshot(company.id, data_start_date, data_end_date)
        return SnapshotSchema.model_validate(snapshot).model_dump()

    async def confirm_pull(self, company: Company, snapshot_id: int, status: str,
                           record_count: int = None, delta_count: int = None,
                           error_message: str = None) -> Dict[str, Any]:
        return await self.snapshot_service.confirm_pull(
            company.id, snapshot_id, status,
            record_count=record_count, delta_count=delta_count, error_message=error_message,
        )
