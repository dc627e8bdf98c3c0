"""
Hash Engine
===========

Content hash untuk satu order (kumpulan line transaksi) dan hash measure
untuk baris summary. Hasil hash harus stabil terhadap urutan baris.
"""

import hashlib
from decimal import Decimal
from typing import Any, Iterable, List, Optional

LINE_SEPARATOR = '||'
FIELD_SEPARATOR = '|'


def format_value(value: Any) -> str:
    """Render satu nilai ke bentuk string kanonik untuk hashing"""
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, (Decimal, int, float)):
        d = value if isinstance(value, Decimal) else Decimal(str(value))
        if d == 0:
            return '0'
        return format(d.normalize(), 'f')
    return str(value)


def sort_lines(lines: Iterable[Any]) -> List[Any]:
    """Urutkan line berdasarkan transaction_id (bentuk string)"""
    return sorted(lines, key=lambda line: str(line.transaction_id))


# Semua kolom isi line kecuali import_date (metadata run import).
# Dimensi SummaryKey ikut di-hash: pindah cabang/tarif pajak = order berubah.
HASH_FIELDS = (
    'menu_item_id', 'menu_item_text', 'quantity', 'extended_price', 'adjusted_price',
    'amount_due', 'order_sub_total', 'order_status', 'is_invoice', 'header_deleted',
    'transaction_deleted', 'sheet_date', 'order_date_time', 'branch_id', 'branch_code',
    'branch_type', 'accounting_code', 'main_accounting_code', 'is_main_combo',
    'tax_percent', 'is_external', 'line_sub_total', 'line_tax_total', 'line_total',
)


def _line_signature(line) -> str:
    fields = [str(line.transaction_id)]
    fields.extend(format_value(getattr(line, name)) for name in HASH_FIELDS)
    return FIELD_SEPARATOR.join(fields)


def calculate_hash(lines: Iterable[Any]) -> str:
    """SHA-256 hex digest dari semua line satu order"""
    content = LINE_SEPARATOR.join(_line_signature(line) for line in sort_lines(lines))
    return hashlib.sha256(content.encode('utf-8')).hexdigest()


def calculate_summary_hash(measures) -> str:
    """Hash dari quantity|sub_total|tax_total|total"""
    content = FIELD_SEPARATOR.join([
        format_value(measures.quantity),
        format_value(measures.sub_total),
        format_value(measures.tax_total),
        format_value(measures.total),
    ])
    return hashlib.sha256(content.encode('utf-8')).hexdigest()


def has_changed(old_hash: Optional[str], new_hash: str) -> bool:
    return old_hash != new_hash
