"""
Snapshot & Delta Service
========================

Watermark snapshot untuk ERP, klasifikasi PRE/POST snapshot, pembuatan
DeltaRecord + AffectedOrder, dan protokol confirm-pull.
"""

from datetime import datetime, time
from typing import Any, Dict, List, NamedTuple, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import BaseService, transactional
from ..exceptions import (
    InvalidStateTransition, SnapshotNotFoundError, SnapshotAccessError,
    SnapshotAlreadyConfirmedError, ValidationError,
)
from ...models import (
    Snapshot, DeltaRecord, AffectedOrder, ChangeLogEntry, TransactionVersion,
    ChangeType, ErpStatus, PullStatus, DeltaChangeType, DeltaType, utcnow,
)
from ...schemas.validators import parse_sync_date
from .grouping import group_by_order_key, calculate_order_contribution, measures_equal
from .summary_service import SummaryChange, SummaryService

DEFAULT_ERROR_MESSAGE = 'Unknown error'


class DeltaOutcome(NamedTuple):
    post_snapshot: int
    pre_snapshot: int


class OrderChange(NamedTuple):
    """Gabungan change log satu order yang dimaterialisasi dalam satu batch"""
    order_key: str
    change_type: ChangeType
    old_version: Optional[int]
    new_version: int
    old_hash: Optional[str]
    new_hash: str
    detected_at: datetime


def merge_order_logs(logs) -> Dict[str, OrderChange]:
    """Satu entry per order: sisi lama dari log pertama, sisi baru dari log terakhir"""
    merged: Dict[str, OrderChange] = {}
    for log in sorted(logs, key=lambda log: (log.order_key, log.new_version)):
        first = merged.get(log.order_key)
        if first is None:
            merged[log.order_key] = OrderChange(
                log.order_key, ChangeType(log.change_type), log.old_version, log.new_version,
                log.old_hash, log.new_hash, log.detected_at,
            )
        else:
            merged[log.order_key] = first._replace(
                new_version=log.new_version, new_hash=log.new_hash, detected_at=log.detected_at,
            )
    return merged


def end_of_day(value: str) -> datetime:
    """Akhir hari (23:59:59.999999) dari tanggal terakhir rentang"""
    day = parse_sync_date(value).date()
    return datetime.combine(day, time(23, 59, 59, 999999))


class SnapshotService(BaseService):
    """Snapshot/delta engine per company"""

    def __init__(self, db_session: AsyncSession, current_user: str = None,
                 summary_service: SummaryService = None):
        super().__init__(db_session, current_user)
        self.summary_service = summary_service or SummaryService(db_session, current_user)

    # ==================== SNAPSHOT LOOKUP ====================

    async def get_current_snapshot(self, company_id: int) -> Optional[Snapshot]:
        """Snapshot yang paling akhir dibuat untuk company"""
        result = await self.db_session.execute(
            select(Snapshot)
            .filter(Snapshot.company_id == company_id)
            .order_by(Snapshot.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_pending_snapshot(self, company_id: int) -> Optional[Snapshot]:
        result = await self.db_session.execute(
            select(Snapshot)
            .filter(Snapshot.company_id == company_id, Snapshot.erp_status == ErpStatus.PENDING)
            .order_by(Snapshot.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_company_snapshot(self, company_id: int, snapshot_id: int) -> Optional[Snapshot]:
        result = await self.db_session.execute(
            select(Snapshot).filter(Snapshot.id == snapshot_id, Snapshot.company_id == company_id)
        )
        return result.scalars().first()

    async def count_unprocessed_deltas(self, snapshot_id: int) -> int:
        result = await self.db_session.execute(
            select(func.count(DeltaRecord.id)).filter(
                DeltaRecord.snapshot_id == snapshot_id,
                DeltaRecord.processed == False,  # noqa: E712
            )
        )
        return result.scalar() or 0

    # ==================== SNAPSHOT CREATION ====================

    @transactional
    async def create_bootstrap_snapshot(self, company_id: int, start_date: str, end_date: str) -> Snapshot:
        """Snapshot pertama company, watermark di akhir hari tanggal akhir"""
        record_count = await self.summary_service.count_records(company_id, start_date, end_date)
        snapshot = Snapshot(
            company_id=company_id,
            snapshot_date=end_of_day(end_date),
            data_start_date=start_date,
            data_end_date=end_date,
            record_count=record_count,
            delta_count=0,
            erp_status=ErpStatus.PENDING,
        )
        self.db_session.add(snapshot)
        await self.db_session.flush()

        self.logger.info(
            f"Bootstrap snapshot {snapshot.id} for company {company_id} at {snapshot.snapshot_date} "
            f"({record_count} summary records)"
        )
        return snapshot

    @transactional
    async def create_snapshot(self, company_id: int, data_start_date: str, data_end_date: str) -> Snapshot:
        """Snapshot manual (PENDING) dengan watermark sekarang"""
        start = parse_sync_date(data_start_date)
        end = parse_sync_date(data_end_date, end_of_day=True)
        if start > end:
            raise ValidationError('dataStartDate must not be after dataEndDate', 'data_start_date')

        record_count = await self.summary_service.count_records(company_id, data_start_date, data_end_date)
        snapshot = Snapshot(
            company_id=company_id,
            snapshot_date=utcnow(),
            data_start_date=data_start_date,
            data_end_date=data_end_date,
            record_count=record_count,
            delta_count=0,
            erp_status=ErpStatus.PENDING,
        )
        self.db_session.add(snapshot)
        await self.db_session.flush()
        return snapshot

    # ==================== DELTA ENGINE ====================

    @transactional
    async def process_deltas(self, company_id: int, sync_batch_id: int, snapshot: Snapshot,
                             changes: List[SummaryChange]) -> DeltaOutcome:
        """Klasifikasi perubahan summary terhadap watermark snapshot.

        Perubahan dengan waktu deteksi <= snapshot_date digabung diam-diam
        (PRE_SNAPSHOT, tidak disimpan). Sisanya menjadi DeltaRecord.
        """
        changed = [c for c in changes if c.old is None or not measures_equal(c.old, c.new)]
        if not changed:
            return DeltaOutcome(0, 0)

        # Log yang dimaterialisasi batch ini, termasuk sisa batch gagal sebelumnya
        result = await self.db_session.execute(
            select(ChangeLogEntry).filter(
                ChangeLogEntry.company_id == company_id,
                ChangeLogEntry.materialized_batch_id == sync_batch_id,
            )
        )
        logs = merge_order_logs(result.scalars().all())

        new_lines = {}
        if logs:
            result = await self.db_session.execute(
                select(TransactionVersion).filter(
                    TransactionVersion.company_id == company_id,
                    TransactionVersion.is_latest == True,  # noqa: E712
                    TransactionVersion.order_key.in_(sorted(logs)),
                )
            )
            new_lines = group_by_order_key(result.scalars().all())

        post_count = pre_count = 0
        for change in changed:
            contributing = [logs[order_key] for order_key in change.order_keys if order_key in logs]
            if not contributing:
                continue
            change_time = max(log.detected_at for log in contributing)

            if change_time <= snapshot.snapshot_date:
                pre_count += 1
                self.logger.info(
                    f"[Delta] Pre-snapshot change for {change.key.sheet_date}/"
                    f"{change.key.accounting_code}, merged into summary"
                )
                continue

            old = change.old
            delta = DeltaRecord(
                company_id=company_id,
                change_type=DeltaChangeType.INSERT if old is None else DeltaChangeType.UPDATE,
                delta_type=DeltaType.POST_SNAPSHOT,
                old_quantity=old.quantity if old else None,
                old_sub_total=old.sub_total if old else None,
                old_tax_total=old.tax_total if old else None,
                old_total=old.total if old else None,
                new_quantity=change.new.quantity,
                new_sub_total=change.new.sub_total,
                new_tax_total=change.new.tax_total,
                new_total=change.new.total,
                snapshot_id=snapshot.id,
                processed=False,
                sync_batch_id=sync_batch_id,
                changed_at=change_time,
                **change.key.as_dict(),
            )

            for log in contributing:
                order_lines = new_lines.get(log.order_key, [])
                contribution = calculate_order_contribution(order_lines, change.key)
                first = order_lines[0] if order_lines else None
                delta.affected_orders.append(AffectedOrder(
                    order_key=log.order_key,
                    change_type=log.change_type,
                    order_date_time=first.order_date_time if first else None,
                    import_date=first.import_date if first else None,
                    order_quantity=contribution.quantity,
                    order_sub_total=contribution.sub_total,
                    order_tax_total=contribution.tax_total,
                    order_total=contribution.total,
                    old_version=log.old_version,
                    new_version=log.new_version,
                    old_hash=log.old_hash,
                    new_hash=log.new_hash,
                ))

            self.db_session.add(delta)
            post_count += 1

        await self.db_session.flush()
        self.logger.info(
            f"Company {company_id} batch {sync_batch_id}: {post_count} deltas against snapshot "
            f"{snapshot.id}, {pre_count} pre-snapshot changes merged"
        )
        return DeltaOutcome(post_count, pre_count)

    # ==================== ERP CONFIRM PROTOCOL ====================

    def _transition(self, snapshot: Snapshot, target: ErpStatus):
        current = ErpStatus(snapshot.erp_status)
        if not current.can_transition_to(target):
            raise InvalidStateTransition('Snapshot', current.value, target.value)
        snapshot.erp_status = target

    @transactional
    async def confirm_pull(self, company_id: int, snapshot_id: int, status: PullStatus,
                           record_count: int = None, delta_count: int = None,
                           error_message: str = None) -> Dict[str, Any]:
        """Konfirmasi ERP atas hasil penarikan satu snapshot"""
        result = await self.db_session.execute(select(Snapshot).filter(Snapshot.id == snapshot_id))
        snapshot = result.scalars().first()

        if snapshot is None:
            raise SnapshotNotFoundError(snapshot_id)
        if snapshot.company_id != company_id:
            raise SnapshotAccessError(snapshot_id)
        if snapshot.erp_status == ErpStatus.CONFIRMED:
            raise SnapshotAlreadyConfirmedError(snapshot_id, snapshot.erp_confirmed_at)

        now = utcnow()
        status = PullStatus(status)

        if status == PullStatus.FAILED:
            self._transition(snapshot, ErpStatus.FAILED)
            snapshot.erp_pulled_at = now
            snapshot.erp_error_message = error_message or DEFAULT_ERROR_MESSAGE
            await self.db_session.flush()
            self.logger.warning(f"ERP pull failed for snapshot {snapshot_id}: {snapshot.erp_error_message}")
            return {
                'status': ErpStatus.FAILED.value,
                'snapshot_id': snapshot.id,
                'error_message': snapshot.erp_error_message,
            }

        self._transition(snapshot, ErpStatus.CONFIRMED)
        window_count = await self.summary_service.count_records(
            company_id, snapshot.data_start_date, snapshot.data_end_date
        )
        snapshot.erp_confirmed_at = now
        snapshot.erp_pulled_at = now
        snapshot.erp_error_message = None
        snapshot.record_count = window_count
        snapshot.delta_count = await self.count_unprocessed_deltas(snapshot.id)
        snapshot.erp_record_count = record_count
        snapshot.erp_delta_count = delta_count

        processed = await self.db_session.execute(
            update(DeltaRecord)
            .where(
                DeltaRecord.snapshot_id == snapshot.id,
                DeltaRecord.processed == False,  # noqa: E712
            )
            .values(processed=True, processed_at=now, updated_at=now)
        )

        next_snapshot = Snapshot(
            company_id=company_id,
            snapshot_date=now,
            data_start_date=snapshot.data_start_date,
            data_end_date=snapshot.data_end_date,
            record_count=window_count,
            delta_count=0,
            erp_status=ErpStatus.PENDING,
        )
        self.db_session.add(next_snapshot)
        await self.db_session.flush()

        self.logger.info(
            f"Snapshot {snapshot.id} confirmed by ERP, {processed.rowcount} deltas processed, "
            f"next snapshot {next_snapshot.id}"
        )
        return {
            'status': ErpStatus.CONFIRMED.value,
            'snapshot_id': snapshot.id,
            'next_snapshot_id': next_snapshot.id,
            'processed_delta_count': processed.rowcount,
            'confirmed_at': now.isoformat(),
        }
