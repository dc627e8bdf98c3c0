"""
Summary Materializer
====================

Hitung ulang agregat SummaryRecord untuk key yang tersentuh perubahan order.
"""

from typing import Dict, List, NamedTuple, Optional, Set, Tuple

from sqlalchemy import select, and_, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import BaseService, transactional
from ...models import TransactionVersion, ChangeLogEntry, SummaryRecord, utcnow
from .grouping import (
    SummaryKey, Measures, summary_key_for, group_by_summary_key, calculate_summary,
)
from .hashing import calculate_summary_hash

# Batas jumlah kondisi OR per query
OR_CHUNK = 200


class SummaryChange(NamedTuple):
    key: SummaryKey
    old: Optional[Measures]
    new: Measures
    version: int
    order_keys: List[str]

    @property
    def is_insert(self) -> bool:
        return self.old is None


def record_measures(record: SummaryRecord) -> Measures:
    return Measures(record.quantity, record.sub_total, record.tax_total, record.total)


class SummaryService(BaseService):
    """Materializer SummaryRecord per company"""

    def __init__(self, db_session: AsyncSession, current_user: str = None):
        super().__init__(db_session, current_user)

    async def _pending_change_logs(self, company_id: int) -> List[ChangeLogEntry]:
        """Change log yang belum masuk summary, termasuk sisa batch yang gagal"""
        result = await self.db_session.execute(
            select(ChangeLogEntry).filter(
                ChangeLogEntry.company_id == company_id,
                ChangeLogEntry.materialized_batch_id.is_(None),
            ).order_by(ChangeLogEntry.id)
        )
        return list(result.scalars().all())

    async def _version_lines(self, company_id: int,
                             pairs: List[Tuple[str, int]]) -> List[TransactionVersion]:
        """Line untuk pasangan (order_key, version), dimuat per chunk"""
        lines: List[TransactionVersion] = []
        pairs = sorted(set(pairs))
        for start in range(0, len(pairs), OR_CHUNK):
            chunk = pairs[start:start + OR_CHUNK]
            result = await self.db_session.execute(
                select(TransactionVersion).filter(
                    TransactionVersion.company_id == company_id,
                    or_(*[
                        and_(TransactionVersion.order_key == order_key,
                             TransactionVersion.version == version)
                        for order_key, version in chunk
                    ]),
                )
            )
            lines.extend(result.scalars().all())
        return lines

    async def _load_by_dimensions(self, model, company_id: int, keys, extra=()) -> list:
        # Filter kasar per (sheet_date, branch_code, accounting_code); sisa dimensi dicocokkan di Python
        triples = sorted({(key.sheet_date, key.branch_code, key.accounting_code) for key in keys})
        rows = []
        for start in range(0, len(triples), OR_CHUNK):
            chunk = triples[start:start + OR_CHUNK]
            result = await self.db_session.execute(
                select(model).filter(
                    model.company_id == company_id,
                    *extra,
                    or_(*[
                        and_(model.sheet_date == sheet_date,
                             model.branch_code == branch_code,
                             model.accounting_code == accounting_code)
                        for sheet_date, branch_code, accounting_code in chunk
                    ]),
                )
            )
            rows.extend(result.scalars().all())
        return rows

    async def _latest_lines_for_keys(self, company_id: int, keys) -> List[TransactionVersion]:
        return await self._load_by_dimensions(
            TransactionVersion, company_id, keys,
            extra=(TransactionVersion.is_latest == True,),  # noqa: E712
        )

    async def _records_for_keys(self, company_id: int, keys) -> Dict[SummaryKey, SummaryRecord]:
        records = await self._load_by_dimensions(SummaryRecord, company_id, keys)
        return {summary_key_for(record): record for record in records}

    @transactional
    async def materialize_batch(self, company_id: int, sync_batch_id: int) -> List[SummaryChange]:
        """Upsert SummaryRecord untuk semua key yang tersentuh perubahan order.

        Yang diproses adalah semua change log company yang belum dimaterialisasi,
        jadi perubahan dari batch yang gagal sebelum tahap ini ikut terhitung
        pada run berikutnya. Log ditandai ``materialized_batch_id`` dalam
        transaksi yang sama dengan upsert summary.

        Key tersentuh = key dari line versi baru dan line versi lama setiap
        order yang berubah, sehingga key yang ditinggalkan sebuah order juga
        dihitung ulang (bisa menjadi nol).
        """
        change_logs = await self._pending_change_logs(company_id)
        if not change_logs:
            return []

        new_lines = await self._version_lines(
            company_id, [(log.order_key, log.new_version) for log in change_logs]
        )
        old_lines = await self._version_lines(
            company_id, [(log.order_key, log.old_version) for log in change_logs if log.old_version]
        )

        touched: Dict[SummaryKey, Set[str]] = {}
        for line in list(new_lines) + list(old_lines):
            touched.setdefault(summary_key_for(line), set()).add(line.order_key)

        grouped = group_by_summary_key(await self._latest_lines_for_keys(company_id, touched))
        records = await self._records_for_keys(company_id, touched)

        now = utcnow()
        changes: List[SummaryChange] = []
        for key in sorted(touched):
            measures = calculate_summary(grouped.get(key, []))
            data_hash = calculate_summary_hash(measures)
            record = records.get(key)

            if record is not None:
                old = record_measures(record)
                record.version = (record.version or 0) + 1
            else:
                old = None
                record = SummaryRecord(company_id=company_id, version=1, **key.as_dict())
                self.db_session.add(record)

            record.quantity = measures.quantity
            record.sub_total = measures.sub_total
            record.tax_total = measures.tax_total
            record.total = measures.total
            record.data_hash = data_hash
            record.last_modified = now
            record.last_sync_batch_id = sync_batch_id

            changes.append(SummaryChange(key, old, measures, record.version, sorted(touched[key])))

        carried = 0
        for log in change_logs:
            if log.sync_batch_id != sync_batch_id:
                carried += 1
            log.materialized_batch_id = sync_batch_id

        await self.db_session.flush()
        if carried:
            self.logger.warning(
                f"Company {company_id} batch {sync_batch_id}: {carried} change logs from earlier batches materialized"
            )
        self.logger.info(
            f"Company {company_id} batch {sync_batch_id}: {len(changes)} summary keys recomputed"
        )
        return changes

    async def count_records(self, company_id: int, start_date: str, end_date: str) -> int:
        """Jumlah SummaryRecord dalam jendela sheet_date"""
        result = await self.db_session.execute(
            select(func.count(SummaryRecord.id)).filter(
                SummaryRecord.company_id == company_id,
                SummaryRecord.sheet_date >= start_date[:10],
                SummaryRecord.sheet_date <= end_date[:10],
            )
        )
        return result.scalar() or 0
