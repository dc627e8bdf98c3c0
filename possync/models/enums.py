"""
Status & Type Enums
===================

Semua status string yang disimpan di database didefinisikan di sini sebagai
enum eksplisit, termasuk tabel transisi untuk state machine.
"""

from enum import Enum


class SyncType(str, Enum):
    INTERVAL = "INTERVAL"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"


class ChangeType(str, Enum):
    """Jenis perubahan satu order pada ChangeLog."""
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    REIMPORTED = "REIMPORTED"


class OrderResult(str, Enum):
    """Hasil versioning satu order, dipakai untuk statistik batch."""
    NEW = "NEW"
    UPDATED = "UPDATED"
    UNCHANGED = "UNCHANGED"


class DeltaChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"


class DeltaType(str, Enum):
    # PRE_SNAPSHOT hanya label; tidak pernah disimpan sebagai delta
    PRE_SNAPSHOT = "PRE_SNAPSHOT"
    POST_SNAPSHOT = "POST_SNAPSHOT"


class PullStatus(str, Enum):
    """Status yang dikirim ERP pada confirm-pull."""
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class ErpStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    TIMEOUT = "TIMEOUT"

    def can_transition_to(self, target: "ErpStatus") -> bool:
        return target in _ERP_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _ERP_TRANSITIONS[self]


_ERP_TRANSITIONS = {
    ErpStatus.PENDING: {ErpStatus.CONFIRMED, ErpStatus.FAILED, ErpStatus.TIMEOUT},
    ErpStatus.FAILED: {ErpStatus.CONFIRMED, ErpStatus.FAILED},
    ErpStatus.TIMEOUT: {ErpStatus.CONFIRMED, ErpStatus.FAILED},
    ErpStatus.CONFIRMED: set(),
}


class BatchStatus(str, Enum):
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    def can_transition_to(self, target: "BatchStatus") -> bool:
        return target in _BATCH_TRANSITIONS[self]


_BATCH_TRANSITIONS = {
    BatchStatus.RUNNING: {BatchStatus.COMPLETED, BatchStatus.FAILED},
    BatchStatus.COMPLETED: set(),
    BatchStatus.FAILED: set(),
}
