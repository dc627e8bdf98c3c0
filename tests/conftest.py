import pytest
from datetime import timedelta
from decimal import Decimal
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from possync.database import init_models
from possync.models import Company, SyncBatch, SyncType, BatchStatus, utcnow
from possync.schemas.sales import PosTransaction

TODAY = utcnow().strftime('%Y-%m-%d')
YESTERDAY = (utcnow() - timedelta(days=1)).strftime('%Y-%m-%d')
ERP_TOKEN = 'erp-token-acme-000001'


def pos_row(order_key='ORD-1', transaction_id='1', quantity='2', price='10000', tax_percent='10',
            sheet_date=None, import_date=None, accounting_code='4100', branch_code='BR01',
            branch_id=1, **extra):
    """Satu baris transaksi seperti yang dikirim POS API (PascalCase)"""
    sheet_date = sheet_date or TODAY
    qty = Decimal(quantity)
    sub_total = qty * Decimal(price)
    tax_total = sub_total * Decimal(tax_percent) / 100
    row = {
        'OrderKey': order_key,
        'TransactionID': transaction_id,
        'SheetDate': sheet_date,
        'OrderDateTime': f'{sheet_date}T09:30:00',
        'ImportDate': import_date or f'{sheet_date}T10:00:00',
        'MenuItemID': f'M-{transaction_id}',
        'MenuItemText': 'Nasi Goreng',
        'AccountingCode': accounting_code,
        'MainAccountingCode': '4000',
        'IsMainCombo': False,
        'Quantity': str(qty),
        'ExtendedPrice': price,
        'AdjustedPrice': price,
        'TaxPercent': tax_percent,
        'AmountDue': str(sub_total + tax_total),
        'OrderSubTotal': str(sub_total),
        'OrderStatus': 1,
        'IsInvoice': True,
        'HeaderDeleted': False,
        'TransactionDeleted': False,
        'BranchID': branch_id,
        'BranchCode': branch_code,
        'BranchType': 'RESTO',
        'IsExternal': False,
        'LineSubTotal': str(sub_total),
        'LineTaxTotal': str(tax_total),
        'LineTotal': str(sub_total + tax_total),
    }
    row.update(extra)
    return row


def transactions(*rows):
    return [PosTransaction.model_validate(row) for row in rows]


class FakePosFetcher:
    """Pengganti PosClient: mengembalikan rows yang sudah disiapkan"""

    def __init__(self, rows=None, error=None):
        self.rows = list(rows or [])
        self.error = error
        self.calls = []

    async def fetch_transactions(self, company, start_date, end_date):
        self.calls.append((company.code, start_date, end_date))
        if self.error is not None:
            raise self.error
        return [dict(row) for row in self.rows]


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


async def add_company(session, code='ACME', erp_api_token=ERP_TOKEN, **values):
    company = Company(
        code=code,
        name=f'{code} Resto',
        api_url='http://pos.test/api',
        api_token='pos-token',
        erp_api_token=erp_api_token,
        sync_type=values.pop('sync_type', SyncType.DAILY),
        daily_sync_hour=values.pop('daily_sync_hour', 1),
        daily_sync_minute=values.pop('daily_sync_minute', 0),
        **values,
    )
    session.add(company)
    await session.commit()
    return company


@pytest.fixture
async def company(db_session):
    return await add_company(db_session)


@pytest.fixture
async def other_company(db_session):
    return await add_company(db_session, code='BETA', erp_api_token='erp-token-beta-000001')


@pytest.fixture
def new_batch(db_session, company):
    async def _new_batch():
        batch = SyncBatch(company_id=company.id, start_date=TODAY, end_date=TODAY,
                          status=BatchStatus.RUNNING, started_at=utcnow())
        db_session.add(batch)
        await db_session.commit()
        return batch.id
    return _new_batch
