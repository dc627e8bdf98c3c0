import pytest
from decimal import Decimal

from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from possync import create_app
from possync.config import settings
from possync.database import get_db_session
from possync.models import ErpApiLog, ErpStatus, Snapshot, utcnow

from conftest import ERP_TOKEN, TODAY, FakePosFetcher, pos_row

AUTH = {'Authorization': f'Bearer {ERP_TOKEN}'}


@pytest.fixture
def fetcher():
    return FakePosFetcher([pos_row(transaction_id='1'), pos_row(transaction_id='2', quantity='1')])


@pytest.fixture
async def client(session_factory, company, fetcher):
    app = create_app(enable_scheduler=False, pos_fetcher=fetcher)

    async def override_db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


async def _sync(client, company_id):
    response = await client.post('/api/sync', json={'companyId': company_id, 'startDate': TODAY, 'endDate': TODAY})
    assert response.status_code == 200, response.text
    return response.json()['data']


async def _api_logs(session_factory):
    async with session_factory() as session:
        result = await session.execute(select(ErpApiLog).order_by(ErpApiLog.id))
        return list(result.scalars().all())


async def test_health(client):
    response = await client.get('/health')
    assert response.status_code == 200
    assert response.json()['status'] == 'healthy'
    assert 'X-Request-ID' in response.headers


async def test_erp_endpoints_require_company_token(client):
    missing = await client.get('/api/erp/sales-summary', params={'startDate': TODAY, 'endDate': TODAY})
    invalid = await client.get('/api/erp/sales-summary', params={'startDate': TODAY, 'endDate': TODAY},
                               headers={'Authorization': 'Bearer nope'})

    assert missing.status_code == 401
    assert invalid.status_code == 401
    body = invalid.json()
    assert body['success'] is False
    assert body['error_code'] == 'AUTHENTICATION_ERROR'
    assert body['request_id']


async def test_sales_summary_returns_records_and_pending_snapshot(client, company):
    result = await _sync(client, company.id)
    assert result['new_records'] == 1

    response = await client.get('/api/erp/sales-summary', headers=AUTH,
                                params={'startDate': TODAY, 'endDate': TODAY, 'branchCode': 'BR01'})

    assert response.status_code == 200
    data = response.json()['data']
    assert data['company']['code'] == 'ACME'
    assert data['totals']['record_count'] == 1
    assert Decimal(str(data['totals']['total_quantity'])) == 3
    [record] = data['records']
    assert record['accounting_code'] == '4100'
    assert data['snapshot']['erp_status'] == 'PENDING'
    assert data['deltas'] == [] and data['has_deltas'] is False


async def test_sales_summary_rejects_bad_dates(client, session_factory):
    response = await client.get('/api/erp/sales-summary', headers=AUTH,
                                params={'startDate': '2024-03-02', 'endDate': '2024-03-01'})
    assert response.status_code == 400

    [log] = await _api_logs(session_factory)
    assert log.status_code == 400
    assert log.endpoint == '/api/erp/sales-summary'
    assert log.error_message


async def test_confirm_pull_protocol(client, company, fetcher, session_factory):
    company_id = company.id
    await _sync(client, company_id)
    summary = await client.get('/api/erp/sales-summary', headers=AUTH, params={'startDate': TODAY, 'endDate': TODAY})
    snapshot_id = summary.json()['data']['snapshot']['id']

    confirmed = await client.post('/api/erp/confirm-pull', headers=AUTH,
                                  json={'snapshotId': snapshot_id, 'status': 'SUCCESS', 'recordCount': 1})
    assert confirmed.status_code == 200
    data = confirmed.json()['data']
    assert data['status'] == 'CONFIRMED'
    assert set(data) == {'status', 'snapshotId', 'nextSnapshotId', 'processedDeltaCount', 'confirmedAt'}
    assert data['snapshotId'] == snapshot_id and data['processedDeltaCount'] == 0
    next_snapshot_id = data['nextSnapshotId']
    assert next_snapshot_id != snapshot_id

    again = await client.post('/api/erp/confirm-pull', headers=AUTH,
                              json={'snapshotId': snapshot_id, 'status': 'SUCCESS'})
    assert again.status_code == 409
    assert again.json()['error_code'] == 'PROTOCOL_VIOLATION'

    missing = await client.post('/api/erp/confirm-pull', headers=AUTH, json={'snapshotId': 9999, 'status': 'SUCCESS'})
    assert missing.status_code == 404

    malformed = await client.post('/api/erp/confirm-pull', headers=AUTH, json={'status': 'SUCCESS'})
    assert malformed.status_code == 400

    # Perubahan setelah konfirmasi muncul sebagai delta
    fetcher.rows[0] = pos_row(transaction_id='1', quantity='4')
    await _sync(client, company_id)
    deltas = await client.get('/api/erp/deltas', headers=AUTH, params={'startDate': TODAY, 'endDate': TODAY})
    assert deltas.status_code == 200
    payload = deltas.json()['data']
    assert payload['statistics']['total_deltas'] == 1
    assert payload['statistics']['by_change_type'] == {'INSERT': 0, 'UPDATE': 1}
    [delta] = payload['deltas']
    assert delta['snapshot_id'] == next_snapshot_id
    assert delta['affected_order_keys'] == ['ORD-1']
    assert Decimal(str(delta['changes']['quantity'])) == 2

    with_deltas = await client.get('/api/erp/sales-summary', headers=AUTH, params={
        'startDate': TODAY, 'endDate': TODAY, 'afterSnapshotId': snapshot_id})
    assert with_deltas.json()['data']['has_deltas'] is True

    statuses = [log.status_code for log in await _api_logs(session_factory)]
    assert statuses == [200, 200, 409, 404, 200, 200]


async def test_confirm_pull_on_foreign_snapshot_is_forbidden(client, db_session, other_company):
    snapshot = Snapshot(company_id=other_company.id, snapshot_date=utcnow(), data_start_date=TODAY,
                        data_end_date=TODAY, erp_status=ErpStatus.PENDING)
    db_session.add(snapshot)
    await db_session.commit()

    response = await client.post('/api/erp/confirm-pull', headers=AUTH,
                                 json={'snapshotId': snapshot.id, 'status': 'FAILED', 'errorMessage': 'x'})

    assert response.status_code == 403


async def test_failed_pull_and_manual_snapshot(client, session_factory):
    created = await client.post('/api/erp/snapshot', headers=AUTH,
                                json={'dataStartDate': TODAY, 'dataEndDate': TODAY})
    assert created.status_code == 200
    snapshot_id = created.json()['data']['id']

    failed = await client.post('/api/erp/confirm-pull', headers=AUTH,
                               json={'snapshotId': snapshot_id, 'status': 'FAILED'})
    assert failed.status_code == 200
    assert failed.json()['data'] == {'status': 'FAILED', 'snapshotId': snapshot_id, 'errorMessage': 'Unknown error'}

    async with session_factory() as session:
        snapshot = await session.get(Snapshot, snapshot_id)
        assert snapshot.erp_status == ErpStatus.FAILED
        assert snapshot.erp_error_message == 'Unknown error'

    # Snapshot FAILED masih bisa dikonfirmasi ulang
    retried = await client.post('/api/erp/confirm-pull', headers=AUTH,
                                json={'snapshotId': snapshot_id, 'status': 'SUCCESS'})
    assert retried.status_code == 200
    assert retried.json()['data']['status'] == 'CONFIRMED'


async def test_sync_history_and_worker_status(client, company):
    await _sync(client, company.id)

    history = await client.get('/api/sync/history', params={'companyId': company.id})
    body = history.json()
    assert body['pagination']['total'] == 1
    assert body['data'][0]['status'] == 'COMPLETED'

    status = await client.get('/api/sync/worker-status')
    assert status.json()['data']['enabled'] is False


async def test_sync_with_invalid_range_is_rejected(client, company):
    response = await client.post('/api/sync', json={'companyId': company.id, 'startDate': TODAY, 'endDate': '2000-01-01'})
    assert response.status_code == 400


async def test_admin_token_is_enforced(client, monkeypatch):
    monkeypatch.setattr(settings, 'ADMIN_API_TOKEN', 'admin-secret')

    assert (await client.get('/api/sync/history')).status_code == 401
    wrong = await client.get('/api/sync/history', headers={'Authorization': 'Bearer nope'})
    assert wrong.status_code == 403
    ok = await client.get('/api/sync/history', headers={'Authorization': 'Bearer admin-secret'})
    assert ok.status_code == 200


async def test_company_management(client):
    created = await client.post('/api/companies', json={
        'code': 'gamma', 'name': 'Gamma Cafe', 'api_url': 'https://gamma.pos/api', 'api_token': 'tok',
        'erp_api_token': 'erp-token-gamma-000001', 'sync_type': 'INTERVAL', 'sync_interval_minutes': 30,
    })
    assert created.status_code == 201, created.text
    company = created.json()['data']
    assert company['code'] == 'GAMMA'
    assert 'api_token' not in company

    duplicate = await client.post('/api/companies', json={
        'code': 'GAMMA', 'name': 'Again', 'api_url': 'https://gamma.pos/api', 'api_token': 'tok',
        'sync_type': 'INTERVAL', 'sync_interval_minutes': 30,
    })
    assert duplicate.status_code == 409

    updated = await client.patch(f"/api/companies/{company['id']}", json={'sync_enabled': False})
    assert updated.json()['data']['sync_enabled'] is False

    listing = await client.get('/api/companies')
    assert listing.json()['pagination']['total'] == 2
