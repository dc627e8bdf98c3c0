"""
POS API Client
==============

Client HTTP untuk menarik baris transaksi mentah dari POS API per company
"""

import asyncio
import logging
from typing import Any, Dict, List

import requests

from ...config import settings
from ..exceptions import TransientFetchError, DataShapeError

logger = logging.getLogger(__name__)

def replace_query_params(template: str, params: Dict[str, str]) -> str:
    """Ganti @Param di template query dengan nilai ber-kutip"""
    query = template
    for key, value in params.items():
        query = query.replace(f'@{key}', f"'{value}'")
    return query

class PosClient:
    """Fetcher default: POST {query} ke api_url company dengan bearer token.

    Semua fetcher (termasuk fake untuk test) cukup menyediakan
    ``fetch_transactions(company, start_date, end_date)`` yang async dan
    mengembalikan list of dict.
    """

    def __init__(self, timeout: int = None, query_template: str = None,
                 http: requests.Session = None):
        self.timeout = timeout or settings.POS_REQUEST_TIMEOUT
        self.query_template = query_template or settings.POS_SALES_QUERY
        self.http = http or requests.Session()

    def build_query(self, start_date: str, end_date: str) -> str:
        return replace_query_params(self.query_template, {
            'StartDate': start_date,
            'EndDate': end_date,
        })

    def _make_pos_request(self, api_url: str, api_token: str, query: str) -> Any:
        """
        Make HTTP request ke POS API.
        Blocking; dipanggil lewat asyncio.to_thread.
        """
        headers = {
            'Authorization': f'Bearer {api_token}',
            'Content-Type': 'application/json',
            'User-Agent': 'POSSync-Integration/1.0'
        }

        try:
            response = self.http.post(api_url, headers=headers, json={'query': query}, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise TransientFetchError("POS API request timeout")
        except requests.exceptions.ConnectionError:
            raise TransientFetchError("Failed to connect to POS API")
        except requests.exceptions.RequestException as e:
            raise TransientFetchError(f"POS API request failed: {str(e)}")

        if response.status_code >= 400:
            raise TransientFetchError(
                f"POS API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
                response_text=response.text
            )

        try:
            return response.json()
        except ValueError:
            raise DataShapeError("POS API returned a non-JSON response")

    async def fetch_transactions(self, company, start_date: str, end_date: str) -> List[Dict[str, Any]]:
        query = self.build_query(start_date, end_date)
        logger.info(f"Fetching POS transactions for {company.code} ({start_date} - {end_date})")
        logger.debug(f"POS query for {company.code}: {query}")

        payload = await asyncio.to_thread(
            self._make_pos_request, company.api_url, company.api_token, query
        )

        data = payload.get('data') if isinstance(payload, dict) else None
        if not isinstance(data, list):
            raise DataShapeError("Invalid data format from POS API: expected {\"data\": [...]}")

        logger.info(f"POS API returned {len(data)} rows for {company.code}")
        return data
