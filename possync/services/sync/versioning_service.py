"""
Order Versioning Service
========================

Keputusan NEW / UPDATED / UNCHANGED per order, penulisan versi immutable
dan ChangeLogEntry dengan diff before/after.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import BaseService, transactional
from ...models import TransactionVersion, ChangeLogEntry, ChangeType, OrderResult, utcnow
from .hashing import calculate_hash, format_value, sort_lines

DIFF_SCHEMA_VERSION = 1

# Kolom line yang disalin apa adanya dari PosTransaction ke TransactionVersion
LINE_FIELDS = (
    'transaction_id', 'sheet_date', 'order_date_time', 'import_date',
    'menu_item_id', 'menu_item_text', 'accounting_code', 'main_accounting_code',
    'is_main_combo', 'quantity', 'extended_price', 'adjusted_price', 'tax_percent',
    'amount_due', 'order_sub_total', 'order_status', 'is_invoice',
    'header_deleted', 'transaction_deleted', 'branch_id', 'branch_code',
    'branch_type', 'is_external', 'line_sub_total', 'line_tax_total', 'line_total',
)

DIFF_FIELDS = (
    'quantity', 'extended_price', 'tax_percent', 'amount_due', 'order_sub_total',
    'order_status', 'line_sub_total', 'line_tax_total', 'line_total',
    'header_deleted', 'transaction_deleted', 'sheet_date', 'branch_id', 'branch_code',
    'accounting_code', 'main_accounting_code', 'is_main_combo', 'is_external',
)

PAYLOAD_FIELDS = (
    'transaction_id', 'menu_item_text', 'accounting_code', 'quantity',
    'extended_price', 'amount_due', 'line_sub_total', 'line_tax_total',
    'line_total', 'header_deleted', 'transaction_deleted', 'order_status',
)


def _render(value: Any) -> Any:
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, int):
        return value
    return format_value(value)


def diff_fields(old_lines: Sequence[Any], new_lines: Sequence[Any]) -> List[str]:
    """Nama field yang berbeda antara dua set line (diurutkan seperti hashing)"""
    changed = []
    if len(old_lines) != len(new_lines):
        changed.append('transaction_count')

    old_sorted = sort_lines(old_lines)
    new_sorted = sort_lines(new_lines)
    for field in DIFF_FIELDS:
        old_values = [format_value(getattr(line, field)) for line in old_sorted]
        new_values = [format_value(getattr(line, field)) for line in new_sorted]
        if old_values != new_values:
            changed.append(field)
    return changed


def _version_payload(version: int, content_hash: str, lines: Sequence[Any]) -> Dict[str, Any]:
    return {
        'version': version,
        'hash': content_hash,
        'transaction_count': len(lines),
        'transactions': [
            {field: _render(getattr(line, field)) for field in PAYLOAD_FIELDS}
            for line in sort_lines(lines)
        ],
    }


def build_diff_snapshot(order_key: str, changes: List[str],
                        old: Optional[Dict[str, Any]], new: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'schema_version': DIFF_SCHEMA_VERSION,
        'order_key': order_key,
        'changes': changes,
        'versions': {'old': old, 'new': new},
    }


class VersioningService(BaseService):
    """Versioning immutable untuk line transaksi per order"""

    def __init__(self, db_session: AsyncSession, current_user: str = None):
        super().__init__(db_session, current_user)

    async def get_latest_lines(self, company_id: int, order_key: str) -> List[TransactionVersion]:
        result = await self.db_session.execute(
            select(TransactionVersion)
            .filter(
                TransactionVersion.company_id == company_id,
                TransactionVersion.order_key == order_key,
                TransactionVersion.is_latest == True,  # noqa: E712
            )
            .order_by(TransactionVersion.id)
        )
        return list(result.scalars().all())

    async def get_version_lines(self, company_id: int, order_key: str,
                                version: int) -> List[TransactionVersion]:
        result = await self.db_session.execute(
            select(TransactionVersion)
            .filter(
                TransactionVersion.company_id == company_id,
                TransactionVersion.order_key == order_key,
                TransactionVersion.version == version,
            )
            .order_by(TransactionVersion.id)
        )
        return list(result.scalars().all())

    @transactional
    async def process_order(self, company_id: int, order_key: str, lines: Sequence[Any],
                            sync_batch_id: int) -> OrderResult:
        """Proses satu order: tulis versi baru jika hash berubah.

        Satu order = satu transaksi database. Lines adalah PosTransaction
        (atau objek lain dengan atribut yang sama).
        """
        if not lines:
            return OrderResult.UNCHANGED

        new_hash = calculate_hash(lines)
        existing = await self.get_latest_lines(company_id, order_key)
        current = existing[0] if existing else None

        if current is not None and current.content_hash == new_hash:
            return OrderResult.UNCHANGED

        old_version = current.version if current else 0
        new_version = old_version + 1
        now = utcnow()

        if current is not None:
            await self.db_session.execute(
                update(TransactionVersion)
                .where(
                    TransactionVersion.company_id == company_id,
                    TransactionVersion.order_key == order_key,
                    TransactionVersion.is_latest == True,  # noqa: E712
                )
                .values(is_latest=False, updated_at=now)
            )

        for line in lines:
            self.db_session.add(TransactionVersion(
                company_id=company_id,
                order_key=order_key,
                version=new_version,
                is_latest=True,
                content_hash=new_hash,
                sync_batch_id=sync_batch_id,
                created_at=now,
                **{field: getattr(line, field) for field in LINE_FIELDS},
            ))

        if current is None:
            change_type = ChangeType.CREATED
        elif current.import_date != lines[0].import_date:
            change_type = ChangeType.REIMPORTED
        else:
            change_type = ChangeType.UPDATED

        new_payload = _version_payload(new_version, new_hash, lines)
        if current is not None:
            changes = diff_fields(existing, lines)
            old_payload = _version_payload(current.version, current.content_hash, existing)
        else:
            changes = []
            old_payload = None

        self.db_session.add(ChangeLogEntry(
            company_id=company_id,
            order_key=order_key,
            change_type=change_type,
            old_hash=current.content_hash if current else None,
            new_hash=new_hash,
            old_version=current.version if current else None,
            new_version=new_version,
            changed_fields=changes,
            diff_snapshot=build_diff_snapshot(order_key, changes, old_payload, new_payload),
            sync_batch_id=sync_batch_id,
            detected_at=now,
        ))
        await self.db_session.flush()

        self.logger.debug(f"Order {order_key} -> v{new_version} ({change_type.value})")
        return OrderResult.NEW if current is None else OrderResult.UPDATED
