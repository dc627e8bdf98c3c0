import pytest
from datetime import datetime
from decimal import Decimal
from pydantic import ValidationError as SchemaValidationError

from possync.schemas import ConfirmPullRequest, CompanyCreateSchema, PosTransaction, SyncRequestSchema
from possync.schemas.validators import parse_sync_date
from possync.services.exceptions import DataShapeError
from possync.services.sync.sync_service import parse_rows

from conftest import pos_row


def test_pos_transaction_accepts_pascal_and_camel_case():
    pascal = PosTransaction.model_validate(pos_row())
    camel = PosTransaction.model_validate({
        'orderKey': 'ORD-1', 'transactionId': 1, 'orderDateTime': '2024-03-01T09:00:00',
        'branchId': 1, 'branchCode': 'BR01', 'quantity': 2.5, 'lineTotal': None,
    })
    assert pascal.order_key == 'ORD-1'
    assert pascal.quantity == Decimal('2')
    assert camel.transaction_id == '1'
    assert camel.quantity == Decimal('2.5')
    assert camel.line_total == Decimal('0')
    assert camel.accounting_code == ''
    assert camel.sheet_date == '2024-03-01'


def test_pos_transaction_requires_a_date():
    row = pos_row(SheetDate=None, OrderDateTime=None)
    with pytest.raises(SchemaValidationError):
        PosTransaction.model_validate(row)


def test_pos_transaction_stores_naive_utc():
    line = PosTransaction.model_validate(pos_row(import_date='2024-03-01T17:00:00+07:00'))
    assert line.import_date == datetime(2024, 3, 1, 10, 0, 0)
    assert line.import_date.tzinfo is None


def test_parse_rows_reports_offending_row():
    with pytest.raises(DataShapeError) as exc_info:
        parse_rows([pos_row(), {'OrderKey': 'X'}])
    assert exc_info.value.row_index == 1
    assert exc_info.value.details['errors']

    with pytest.raises(DataShapeError):
        parse_rows([pos_row(), 'not-a-row'])


def test_parse_sync_date():
    assert parse_sync_date('2024-03-01') == datetime(2024, 3, 1)
    assert parse_sync_date('2024-03-01', end_of_day=True) == datetime(2024, 3, 1, 23, 59, 59)
    assert parse_sync_date('2024-03-01 08:15:00') == datetime(2024, 3, 1, 8, 15)
    with pytest.raises(ValueError):
        parse_sync_date('01/03/2024')


def test_sync_request_rejects_inverted_range():
    SyncRequestSchema.model_validate({'companyId': 1, 'startDate': '2024-03-01', 'endDate': '2024-03-01'})
    with pytest.raises(SchemaValidationError):
        SyncRequestSchema.model_validate({'companyId': 1, 'startDate': '2024-03-02', 'endDate': '2024-03-01'})


def test_confirm_pull_request_status_must_be_known():
    body = ConfirmPullRequest.model_validate({'snapshotId': 3, 'status': 'SUCCESS', 'recordCount': 10})
    assert body.snapshot_id == 3 and body.record_count == 10
    with pytest.raises(SchemaValidationError):
        ConfirmPullRequest.model_validate({'snapshotId': 3, 'status': 'DONE'})


def test_company_schedule_requires_type_specific_fields():
    base = {'code': 'acme', 'name': 'Acme', 'api_url': 'https://pos.test', 'api_token': 't'}
    company = CompanyCreateSchema.model_validate({**base, 'sync_type': 'DAILY', 'daily_sync_hour': 2})
    assert company.code == 'ACME'
    with pytest.raises(SchemaValidationError):
        CompanyCreateSchema.model_validate({**base, 'sync_type': 'INTERVAL'})
    with pytest.raises(SchemaValidationError):
        CompanyCreateSchema.model_validate({**base, 'sync_type': 'WEEKLY', 'weekly_sync_hour': 1})
    with pytest.raises(SchemaValidationError):
        CompanyCreateSchema.model_validate({**base, 'api_url': 'ftp://pos.test', 'daily_sync_hour': 2})
