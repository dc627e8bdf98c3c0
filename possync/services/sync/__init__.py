from .hashing import calculate_hash, calculate_summary_hash, has_changed
from .grouping import (
    SummaryKey, Measures, group_by_order_key, group_by_summary_key, summary_key_for,
    calculate_summary, calculate_order_contribution,
)
from .versioning_service import VersioningService
from .summary_service import SummaryService, SummaryChange
from .snapshot_service import SnapshotService, DeltaOutcome
from .sync_service import SyncService, parse_rows

__all__ = [
    'calculate_hash', 'calculate_summary_hash', 'has_changed',
    'SummaryKey', 'Measures', 'group_by_order_key', 'group_by_summary_key', 'summary_key_for',
    'calculate_summary', 'calculate_order_contribution',
    'VersioningService', 'SummaryService', 'SummaryChange',
    'SnapshotService', 'DeltaOutcome',
    'SyncService', 'parse_rows',
]
