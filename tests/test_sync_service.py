import pytest
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, func

from possync.config import settings
from possync.models import (
    BatchStatus, ChangeLogEntry, ChangeType, Company, DeltaRecord, DeltaType, ErpStatus, Snapshot,
    SummaryRecord, SyncBatch,
)
from possync.services import create_service_registry
from possync.services.sync.summary_service import SummaryService
from possync.services.exceptions import DataShapeError, NotFoundError, TransientFetchError, ValidationError

from conftest import TODAY, YESTERDAY, FakePosFetcher, pos_row


def _registry(session, fetcher):
    return create_service_registry(session, settings.model_dump(), pos_fetcher=fetcher)


async def _count(session, model):
    return (await session.execute(select(func.count(model.id)))).scalar()


async def _one(session_factory, model, *criteria):
    # session baru supaya tidak membaca object lama dari identity map
    async with session_factory() as session:
        result = await session.execute(select(model).filter(*criteria).order_by(model.id.desc()))
        return result.scalars().first()


async def test_sync_lifecycle_from_bootstrap_to_delta(db_session, session_factory, company):
    company_id = company.id
    fetcher = FakePosFetcher([pos_row(transaction_id='1'), pos_row(transaction_id='2', quantity='1')])
    services = _registry(db_session, fetcher)

    # 1. Sync pertama: order baru, summary v1, snapshot bootstrap PENDING
    first = await services.sync_service.run_sync(company_id, TODAY, TODAY)
    assert (first.total_records, first.new_records) == (1, 1)
    assert (await _one(session_factory, ChangeLogEntry)).change_type == ChangeType.CREATED
    assert (await _one(session_factory, SummaryRecord)).version == 1
    snapshot = await _one(session_factory, Snapshot)
    assert snapshot.erp_status == ErpStatus.PENDING
    assert await _count(db_session, Snapshot) == 1

    # 2. Data sama: UNCHANGED, tidak ada log baru, versi summary tetap
    second = await services.sync_service.run_sync(company_id, TODAY, TODAY)
    assert second.unchanged_records == 1 and second.new_records == 0
    assert await _count(db_session, ChangeLogEntry) == 1
    assert (await _one(session_factory, SummaryRecord)).version == 1

    # 3. Quantity berubah sebelum watermark snapshot: summary v2 tanpa delta
    fetcher.rows[0] = pos_row(transaction_id='1', quantity='4')
    third = await services.sync_service.run_sync(company_id, TODAY, TODAY)
    assert third.updated_records == 1
    assert (await _one(session_factory, SummaryRecord)).version == 2
    assert await _count(db_session, DeltaRecord) == 0

    # 4. ERP konfirmasi: snapshot CONFIRMED, snapshot PENDING baru
    confirmed = await services.snapshot_service.confirm_pull(company_id, snapshot.id, 'SUCCESS')
    assert confirmed['status'] == 'CONFIRMED'
    next_snapshot_id = confirmed['next_snapshot_id']

    # 5. Perubahan berikutnya menjadi delta POST_SNAPSHOT
    fetcher.rows[0] = pos_row(transaction_id='1', quantity='5')
    await services.sync_service.run_sync(company_id, TODAY, TODAY)
    delta = await _one(session_factory, DeltaRecord)
    assert delta.delta_type == DeltaType.POST_SNAPSHOT
    assert delta.snapshot_id == next_snapshot_id
    assert [order.order_key for order in delta.affected_orders] == ['ORD-1']

    batch = await _one(session_factory, SyncBatch)
    assert batch.status == BatchStatus.COMPLETED
    assert batch.updated_records == 1 and batch.duration is not None
    assert len(fetcher.calls) == 4


async def test_fetch_failure_marks_batch_failed(db_session, session_factory, company):
    company_id = company.id
    fetcher = FakePosFetcher(error=TransientFetchError("POS API error: 503 - down", status_code=503))

    with pytest.raises(TransientFetchError):
        await _registry(db_session, fetcher).sync_service.run_sync(company_id, TODAY, TODAY)

    batch = await _one(session_factory, SyncBatch)
    assert batch.status == BatchStatus.FAILED
    assert batch.error_message == "POS API error: 503 - down"
    assert batch.error_details['type'] == 'TransientFetchError'
    assert batch.error_details['error_code'] == 'TRANSIENT_FETCH_ERROR'
    assert batch.completed_at is not None
    assert await _count(db_session, Snapshot) == 0


async def test_bad_row_fails_whole_batch(db_session, session_factory, company):
    company_id = company.id
    fetcher = FakePosFetcher([pos_row(), {'OrderKey': 'ORD-2'}])

    with pytest.raises(DataShapeError):
        await _registry(db_session, fetcher).sync_service.run_sync(company_id, TODAY, TODAY)

    assert (await _one(session_factory, SyncBatch)).status == BatchStatus.FAILED
    assert await _count(db_session, ChangeLogEntry) == 0


async def test_invalid_requests_create_no_batch(db_session, company):
    company_id = company.id
    services = _registry(db_session, FakePosFetcher())

    with pytest.raises(ValidationError):
        await services.sync_service.run_sync(company_id, TODAY, YESTERDAY)
    with pytest.raises(ValidationError):
        await services.sync_service.run_sync(company_id, 'kemarin', TODAY)
    with pytest.raises(NotFoundError):
        await services.sync_service.run_sync(9999, TODAY, TODAY)

    assert await _count(db_session, SyncBatch) == 0


async def test_import_watermark_only_moves_forward(db_session, session_factory, company):
    company_id = company.id
    fetcher = FakePosFetcher([pos_row(import_date='2024-03-02T08:00:00')])
    services = _registry(db_session, fetcher)

    await services.sync_service.run_sync(company_id, TODAY, TODAY)
    fetcher.rows = [pos_row(order_key='ORD-2', import_date='2024-03-01T08:00:00')]
    await services.sync_service.run_sync(company_id, TODAY, TODAY)

    refreshed = await _one(session_factory, Company, Company.id == company_id)
    assert refreshed.last_import_date == datetime(2024, 3, 2, 8, 0, 0)


async def test_history_is_paginated_newest_first(db_session, company):
    company_id = company.id
    services = _registry(db_session, FakePosFetcher([pos_row()]))
    for _ in range(3):
        await services.sync_service.run_sync(company_id, TODAY, TODAY)

    history = await services.sync_service.get_history(company_id=company_id, page=1, per_page=2)

    assert history['pagination']['total'] == 3
    assert history['pagination']['has_next'] is True
    assert [item['id'] for item in history['items']] == sorted(
        [item['id'] for item in history['items']], reverse=True)
    assert history['items'][0]['status'] == BatchStatus.COMPLETED


async def test_branch_move_updates_order_and_moves_summary(db_session, session_factory, company):
    company_id = company.id
    fetcher = FakePosFetcher([pos_row()])
    services = _registry(db_session, fetcher)
    await services.sync_service.run_sync(company_id, TODAY, TODAY)

    fetcher.rows = [pos_row(branch_code='BR02', branch_id=2)]
    result = await services.sync_service.run_sync(company_id, TODAY, TODAY)

    assert result.updated_records == 1 and result.unchanged_records == 0
    async with session_factory() as session:
        records = (await session.execute(
            select(SummaryRecord).order_by(SummaryRecord.branch_code)
        )).scalars().all()
    assert [(r.branch_code, r.quantity, r.total) for r in records] == [
        ('BR01', Decimal('0'), Decimal('0')),
        ('BR02', Decimal('2'), Decimal('22000')),
    ]


async def test_retry_after_failed_summary_step_repairs_summary(db_session, session_factory, company, monkeypatch):
    company_id = company.id
    fetcher = FakePosFetcher([pos_row(quantity='2')])
    services = _registry(db_session, fetcher)
    await services.sync_service.run_sync(company_id, TODAY, TODAY)

    materialize = SummaryService.materialize_batch
    calls = []

    async def fail_once(self, company_id, sync_batch_id):
        calls.append(sync_batch_id)
        if len(calls) == 1:
            raise RuntimeError('summary store unavailable')
        return await materialize(self, company_id, sync_batch_id)

    monkeypatch.setattr(SummaryService, 'materialize_batch', fail_once)

    # Versi order sudah tersimpan, tapi summary gagal dihitung
    fetcher.rows = [pos_row(quantity='4')]
    with pytest.raises(RuntimeError):
        await services.sync_service.run_sync(company_id, TODAY, TODAY)
    assert (await _one(session_factory, SyncBatch)).status == BatchStatus.FAILED
    assert (await _one(session_factory, SummaryRecord)).quantity == Decimal('2')

    # Retry: order UNCHANGED, summary tetap diperbaiki dari change log yang tertinggal
    retry = await services.sync_service.run_sync(company_id, TODAY, TODAY)
    assert retry.unchanged_records == 1 and retry.updated_records == 0

    record = await _one(session_factory, SummaryRecord)
    assert (record.quantity, record.total, record.version) == (Decimal('4'), Decimal('44000'), 2)
    assert record.last_sync_batch_id == retry.batch_id
    log = await _one(session_factory, ChangeLogEntry)
    assert log.sync_batch_id == calls[0]
    assert log.materialized_batch_id == retry.batch_id
