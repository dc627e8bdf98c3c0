from sqlalchemy import select, func

from possync.models import ChangeLogEntry, ChangeType, OrderResult, TransactionVersion
from possync.services.sync.versioning_service import VersioningService, diff_fields

from conftest import pos_row, transactions


async def _logs(session, order_key='ORD-1'):
    result = await session.execute(
        select(ChangeLogEntry).filter(ChangeLogEntry.order_key == order_key).order_by(ChangeLogEntry.id)
    )
    return list(result.scalars().all())


async def _version_numbers(session, order_key='ORD-1', latest_only=False):
    query = select(TransactionVersion.version).filter(TransactionVersion.order_key == order_key)
    if latest_only:
        query = query.filter(TransactionVersion.is_latest == True)  # noqa: E712
    result = await session.execute(query)
    return sorted(set(result.scalars().all()))


async def test_first_import_creates_version_one(db_session, company, new_batch):
    service = VersioningService(db_session)
    batch_id = await new_batch()
    lines = transactions(pos_row(transaction_id='1'), pos_row(transaction_id='2', quantity='1'))

    result = await service.process_order(company.id, 'ORD-1', lines, batch_id)

    assert result == OrderResult.NEW
    latest = await service.get_latest_lines(company.id, 'ORD-1')
    assert len(latest) == 2
    assert {line.version for line in latest} == {1}
    assert len({line.content_hash for line in latest}) == 1

    logs = await _logs(db_session)
    assert len(logs) == 1
    assert logs[0].change_type == ChangeType.CREATED
    assert logs[0].old_version is None and logs[0].new_version == 1
    assert logs[0].changed_fields == []
    assert logs[0].diff_snapshot['versions']['old'] is None
    assert logs[0].diff_snapshot['versions']['new']['transaction_count'] == 2


async def test_identical_import_is_unchanged(db_session, company, new_batch):
    service = VersioningService(db_session)
    rows = [pos_row(transaction_id='1'), pos_row(transaction_id='2')]
    await service.process_order(company.id, 'ORD-1', transactions(*rows), await new_batch())

    result = await service.process_order(company.id, 'ORD-1', transactions(*reversed(rows)), await new_batch())

    assert result == OrderResult.UNCHANGED
    assert len(await _logs(db_session)) == 1
    assert await _version_numbers(db_session) == [1]


async def test_changed_order_gets_new_latest_version(db_session, company, new_batch):
    service = VersioningService(db_session)
    await service.process_order(company.id, 'ORD-1', transactions(pos_row(quantity='2')), await new_batch())

    result = await service.process_order(company.id, 'ORD-1', transactions(pos_row(quantity='3')), await new_batch())

    assert result == OrderResult.UPDATED
    assert await _version_numbers(db_session) == [1, 2]
    assert await _version_numbers(db_session, latest_only=True) == [2]

    old = await service.get_version_lines(company.id, 'ORD-1', 1)
    assert [line.is_latest for line in old] == [False]

    log = (await _logs(db_session))[-1]
    assert log.change_type == ChangeType.UPDATED
    assert (log.old_version, log.new_version) == (1, 2)
    assert log.old_hash != log.new_hash
    assert 'quantity' in log.changed_fields
    assert 'line_total' in log.changed_fields
    assert 'transaction_count' not in log.changed_fields
    assert log.diff_snapshot['changes'] == log.changed_fields
    assert log.diff_snapshot['versions']['old']['transactions'][0]['quantity'] == '2'
    assert log.diff_snapshot['versions']['new']['transactions'][0]['quantity'] == '3'


async def test_reimport_with_new_import_date(db_session, company, new_batch):
    service = VersioningService(db_session)
    await service.process_order(company.id, 'ORD-1', transactions(pos_row()), await new_batch())

    # ImportDate tidak ikut hash: tanpa perubahan isi tetap UNCHANGED
    same = transactions(pos_row(import_date='2030-01-01T00:00:00'))
    assert await service.process_order(company.id, 'ORD-1', same, await new_batch()) == OrderResult.UNCHANGED

    changed = transactions(pos_row(quantity='5', import_date='2030-01-01T00:00:00'))
    assert await service.process_order(company.id, 'ORD-1', changed, await new_batch()) == OrderResult.UPDATED
    assert (await _logs(db_session))[-1].change_type == ChangeType.REIMPORTED


async def test_branch_move_is_update_with_dimension_diff(db_session, company, new_batch):
    service = VersioningService(db_session)
    await service.process_order(company.id, 'ORD-1', transactions(pos_row()), await new_batch())

    moved = transactions(pos_row(branch_code='BR02', branch_id=2))
    assert await service.process_order(company.id, 'ORD-1', moved, await new_batch()) == OrderResult.UPDATED

    log = (await _logs(db_session))[-1]
    assert log.change_type == ChangeType.UPDATED
    assert {'branch_code', 'branch_id'} <= set(log.changed_fields)
    assert 'quantity' not in log.changed_fields


async def test_removed_line_is_reported_as_transaction_count(db_session, company, new_batch):
    service = VersioningService(db_session)
    await service.process_order(
        company.id, 'ORD-1', transactions(pos_row(transaction_id='1'), pos_row(transaction_id='2')),
        await new_batch()
    )
    await service.process_order(company.id, 'ORD-1', transactions(pos_row(transaction_id='1')), await new_batch())

    log = (await _logs(db_session))[-1]
    assert 'transaction_count' in log.changed_fields
    latest = await service.get_latest_lines(company.id, 'ORD-1')
    assert [line.transaction_id for line in latest] == ['1']


async def test_orders_are_versioned_per_company(db_session, company, other_company, new_batch):
    service = VersioningService(db_session)
    batch_id = await new_batch()
    await service.process_order(company.id, 'ORD-1', transactions(pos_row()), batch_id)
    result = await service.process_order(other_company.id, 'ORD-1', transactions(pos_row()), batch_id)

    assert result == OrderResult.NEW
    count = await db_session.execute(select(func.count(ChangeLogEntry.id)))
    assert count.scalar() == 2


def test_diff_fields_on_plain_lines():
    old = transactions(pos_row(quantity='2'))
    new = transactions(pos_row(quantity='2', HeaderDeleted=True))
    assert diff_fields(old, new) == ['header_deleted']
    assert diff_fields(old, old) == []
