import pytest
import requests
from types import SimpleNamespace

from possync.services.exceptions import DataShapeError, TransientFetchError
from possync.services.integration.pos_client import PosClient, replace_query_params

COMPANY = SimpleNamespace(code='ACME', api_url='http://pos.test/api', api_token='pos-token')


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=''):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeHttp:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.requests.append({'url': url, 'headers': headers, 'json': json, 'timeout': timeout})
        if self.error is not None:
            raise self.error
        return self.response


def test_replace_query_params_quotes_values():
    query = replace_query_params(
        "SELECT * FROM v WHERE ImportDate BETWEEN @StartDate AND @EndDate",
        {'StartDate': '2024-03-01 00:00:00', 'EndDate': '2024-03-01 23:59:59'},
    )
    assert query == "SELECT * FROM v WHERE ImportDate BETWEEN '2024-03-01 00:00:00' AND '2024-03-01 23:59:59'"


async def test_fetch_posts_query_with_bearer_token():
    http = FakeHttp(FakeResponse(payload={'data': [{'OrderKey': 'ORD-1'}]}))
    client = PosClient(timeout=5, query_template="SELECT @StartDate, @EndDate", http=http)

    rows = await client.fetch_transactions(COMPANY, '2024-03-01', '2024-03-02')

    assert rows == [{'OrderKey': 'ORD-1'}]
    [sent] = http.requests
    assert sent['url'] == 'http://pos.test/api'
    assert sent['headers']['Authorization'] == 'Bearer pos-token'
    assert sent['json'] == {'query': "SELECT '2024-03-01', '2024-03-02'"}
    assert sent['timeout'] == 5


async def test_http_error_is_transient():
    client = PosClient(http=FakeHttp(FakeResponse(status_code=503, text='maintenance')))

    with pytest.raises(TransientFetchError) as exc_info:
        await client.fetch_transactions(COMPANY, '2024-03-01', '2024-03-01')

    assert exc_info.value.status_code == 503
    assert exc_info.value.response_text == 'maintenance'


@pytest.mark.parametrize('error', [
    requests.exceptions.Timeout(),
    requests.exceptions.ConnectionError(),
])
async def test_network_errors_are_transient(error):
    client = PosClient(http=FakeHttp(error=error))
    with pytest.raises(TransientFetchError):
        await client.fetch_transactions(COMPANY, '2024-03-01', '2024-03-01')


@pytest.mark.parametrize('response', [
    FakeResponse(payload=[{'OrderKey': 'ORD-1'}]),
    FakeResponse(payload={'rows': []}),
    FakeResponse(payload={'data': {'OrderKey': 'ORD-1'}}),
    FakeResponse(payload=None, text='<html>'),
])
async def test_unexpected_payload_is_data_shape_error(response):
    client = PosClient(http=FakeHttp(response))
    with pytest.raises(DataShapeError):
        await client.fetch_transactions(COMPANY, '2024-03-01', '2024-03-01')
