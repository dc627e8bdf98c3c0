"""
Dimensional Grouper
===================

Pengelompokan line transaksi per order dan per SummaryKey, serta agregasi
measure. Bekerja untuk PosTransaction maupun TransactionVersion karena
keduanya memakai nama atribut yang sama.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, NamedTuple

ZERO = Decimal('0')


class SummaryKey(NamedTuple):
    """Dimensi agregasi summary. Equality struktural."""
    sheet_date: str
    branch_code: str
    accounting_code: str
    main_accounting_code: str
    is_main_combo: bool
    tax_percent: Decimal
    is_external: bool
    branch_id: int

    def as_dict(self) -> Dict[str, Any]:
        return self._asdict()


class Measures(NamedTuple):
    quantity: Decimal = ZERO
    sub_total: Decimal = ZERO
    tax_total: Decimal = ZERO
    total: Decimal = ZERO

    def as_dict(self) -> Dict[str, Any]:
        return self._asdict()


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def group_by_order_key(rows: Iterable[Any]) -> Dict[str, List[Any]]:
    """Kelompokkan rows per order_key, urutan kemunculan dipertahankan"""
    groups: Dict[str, List[Any]] = {}
    for row in rows:
        groups.setdefault(row.order_key, []).append(row)
    return groups


def summary_key_for(line) -> SummaryKey:
    # Decimal('10.00') dan Decimal('10') harus menghasilkan key yang sama
    tax_percent = _dec(line.tax_percent).normalize()
    if tax_percent == 0:
        tax_percent = ZERO
    return SummaryKey(
        sheet_date=str(line.sheet_date)[:10],
        branch_code=line.branch_code,
        accounting_code=line.accounting_code or '',
        main_accounting_code=line.main_accounting_code or '',
        is_main_combo=bool(line.is_main_combo),
        tax_percent=tax_percent,
        is_external=bool(line.is_external),
        branch_id=int(line.branch_id),
    )


def group_by_summary_key(rows: Iterable[Any]) -> Dict[SummaryKey, List[Any]]:
    groups: Dict[SummaryKey, List[Any]] = {}
    for row in rows:
        groups.setdefault(summary_key_for(row), []).append(row)
    return groups


def calculate_summary(lines: Iterable[Any]) -> Measures:
    """Jumlahkan measure; grup kosong menghasilkan nol"""
    quantity = sub_total = tax_total = total = ZERO
    for line in lines:
        quantity += _dec(line.quantity)
        sub_total += _dec(line.line_sub_total)
        tax_total += _dec(line.line_tax_total)
        total += _dec(line.line_total)
    return Measures(quantity, sub_total, tax_total, total)


def calculate_order_contribution(order_lines: Iterable[Any], key: SummaryKey) -> Measures:
    """Kontribusi satu order ke satu SummaryKey"""
    return calculate_summary(line for line in order_lines if summary_key_for(line) == key)


def measures_equal(a: Measures, b: Measures) -> bool:
    return all(_dec(x) == _dec(y) for x, y in zip(a, b))
