"""
Sync Orchestrator
=================

fetch -> validate -> group -> version -> summarize -> delta -> finalize batch
"""

import time
import traceback
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import BaseService, transactional
from ..exceptions import DataShapeError, NotFoundError, ValidationError, InvalidStateTransition
from ...models import Company, SyncBatch, BatchStatus, OrderResult, utcnow
from ...schemas.sales import PosTransaction
from ...schemas.sync import SyncResult, SyncBatchSchema
from ...schemas.validators import parse_sync_date
from .grouping import group_by_order_key
from .versioning_service import VersioningService
from .summary_service import SummaryService
from .snapshot_service import SnapshotService


def parse_rows(rows: Iterable[Any]) -> List[PosTransaction]:
    """Validasi baris mentah POS menjadi PosTransaction"""
    transactions = []
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            raise DataShapeError(f"POS row {index} is not an object", row_index=index)
        try:
            transactions.append(PosTransaction.model_validate(row))
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = '.'.join(str(part) for part in first.get('loc', ()))
            raise DataShapeError(
                f"Invalid POS row {index}: {location} {first.get('msg')}".strip(),
                row_index=index,
                details={'errors': e.errors(include_url=False, include_context=False)},
            ) from e
    return transactions


def error_details(exc: BaseException) -> Dict[str, Any]:
    return {
        'type': type(exc).__name__,
        'error_code': getattr(exc, 'error_code', None),
        'repr': repr(exc),
        'traceback': ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    }


class SyncService(BaseService):
    """Orkestrasi satu sync untuk satu company dan satu rentang tanggal"""

    def __init__(self, db_session: AsyncSession, pos_fetcher, current_user: str = None,
                 versioning_service: VersioningService = None,
                 summary_service: SummaryService = None,
                 snapshot_service: SnapshotService = None):
        super().__init__(db_session, current_user)
        self.pos_fetcher = pos_fetcher
        self.versioning_service = versioning_service or VersioningService(db_session, current_user)
        self.summary_service = summary_service or SummaryService(db_session, current_user)
        self.snapshot_service = snapshot_service or SnapshotService(
            db_session, current_user, summary_service=self.summary_service
        )

    async def run_sync(self, company_id: int, start_date: str, end_date: str) -> SyncResult:
        """Jalankan pipeline sync. Exception apa pun menandai batch FAILED lalu di-raise ulang."""
        try:
            if parse_sync_date(start_date) > parse_sync_date(end_date, end_of_day=True):
                raise ValidationError('start_date must not be after end_date', 'start_date')
        except ValueError as e:
            raise ValidationError(str(e), 'start_date') from e

        company = await self.db_session.get(Company, company_id)
        if company is None:
            raise NotFoundError('Company', company_id)

        batch_id = await self._start_batch(company_id, start_date, end_date)
        started = time.monotonic()
        self.logger.info(f"Sync batch {batch_id} started for {company.code} ({start_date} - {end_date})")

        stats = {OrderResult.NEW: 0, OrderResult.UPDATED: 0, OrderResult.UNCHANGED: 0}
        total_orders = 0
        try:
            rows = await self.pos_fetcher.fetch_transactions(company, start_date, end_date)
            transactions = parse_rows(rows)

            grouped = group_by_order_key(transactions)
            total_orders = len(grouped)
            self.logger.info(f"Batch {batch_id}: {len(transactions)} rows, {total_orders} orders")

            for order_key, lines in grouped.items():
                result = await self.versioning_service.process_order(company_id, order_key, lines, batch_id)
                stats[result] += 1

            await self._advance_import_watermark(company_id, transactions)

            changes = await self.summary_service.materialize_batch(company_id, batch_id)

            snapshot = await self.snapshot_service.get_current_snapshot(company_id)
            if snapshot is None:
                await self.snapshot_service.create_bootstrap_snapshot(company_id, start_date, end_date)
            else:
                await self.snapshot_service.process_deltas(company_id, batch_id, snapshot, changes)
        except Exception as e:
            duration = int((time.monotonic() - started) * 1000)
            self.logger.error(f"Sync batch {batch_id} failed: {str(e)}")
            await self._finalize_batch(
                batch_id, BatchStatus.FAILED, duration,
                error_message=str(e), error_details=error_details(e),
            )
            raise

        duration = int((time.monotonic() - started) * 1000)
        result = SyncResult(
            batch_id=batch_id,
            total_records=total_orders,
            new_records=stats[OrderResult.NEW],
            updated_records=stats[OrderResult.UPDATED],
            unchanged_records=stats[OrderResult.UNCHANGED],
            duration=duration,
        )
        await self._finalize_batch(
            batch_id, BatchStatus.COMPLETED, duration,
            total_records=result.total_records,
            new_records=result.new_records,
            updated_records=result.updated_records,
            unchanged_records=result.unchanged_records,
        )
        self.logger.info(
            f"Sync batch {batch_id} completed: new={result.new_records} "
            f"updated={result.updated_records} unchanged={result.unchanged_records} ({duration} ms)"
        )
        return result

    @transactional
    async def _start_batch(self, company_id: int, start_date: str, end_date: str) -> int:
        batch = SyncBatch(
            company_id=company_id,
            start_date=start_date,
            end_date=end_date,
            status=BatchStatus.RUNNING,
            started_at=utcnow(),
        )
        self.db_session.add(batch)
        await self.db_session.flush()
        return batch.id

    @transactional
    async def _finalize_batch(self, batch_id: int, status: BatchStatus, duration: int, **values):
        if not BatchStatus.RUNNING.can_transition_to(status):
            raise InvalidStateTransition('SyncBatch', BatchStatus.RUNNING.value, status.value)
        # Hanya batch RUNNING yang difinalisasi, tepat sekali
        result = await self.db_session.execute(
            update(SyncBatch)
            .where(SyncBatch.id == batch_id, SyncBatch.status == BatchStatus.RUNNING)
            .values(status=status, completed_at=utcnow(), duration=duration, **values)
        )
        if result.rowcount != 1:
            self.logger.warning(f"Sync batch {batch_id} was already finalized")

    @transactional
    async def _advance_import_watermark(self, company_id: int, transactions: List[PosTransaction]):
        """Simpan max ImportDate ke company; tidak pernah mundur"""
        import_dates = [t.import_date for t in transactions if t.import_date is not None]
        if not import_dates:
            return None
        max_import_date = max(import_dates)
        await self.db_session.execute(
            update(Company)
            .where(
                Company.id == company_id,
                or_(Company.last_import_date.is_(None), Company.last_import_date < max_import_date),
            )
            .values(last_import_date=max_import_date)
        )
        return max_import_date

    async def get_history(self, company_id: int = None, status: str = None,
                          page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        """Riwayat SyncBatch terbaru dulu"""
        query = select(SyncBatch)
        query = await self._apply_filters(query, SyncBatch, {'company_id': company_id, 'status': status})
        query = query.order_by(SyncBatch.id.desc())
        result = await self._paginate_query(query, page, per_page)
        return {
            'items': [SyncBatchSchema.model_validate(item).model_dump() for item in result['items']],
            'pagination': result['pagination'],
        }
