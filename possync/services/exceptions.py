"""
Custom Exceptions untuk POS Sync Services
=========================================

Definisi semua custom exceptions yang digunakan dalam business logic
"""

class PosSyncException(Exception):
    """Base exception untuk semua POS sync errors"""
    http_status = 500

    def __init__(self, message, error_code=None, details=None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

class ValidationError(PosSyncException):
    """Error untuk validation failures"""
    http_status = 400

    def __init__(self, message, field=None, details=None):
        super().__init__(message, 'VALIDATION_ERROR', details)
        self.field = field

class BusinessRuleError(PosSyncException):
    """Error untuk business rule violations"""
    http_status = 422

    def __init__(self, message, rule_code=None, details=None):
        super().__init__(message, 'BUSINESS_RULE_ERROR', details)
        self.rule_code = rule_code

class InvalidStateTransition(BusinessRuleError):
    """Error ketika status entity tidak boleh berpindah ke status target"""
    http_status = 409

    def __init__(self, entity_type, current_status, target_status, details=None):
        message = f"{entity_type} cannot move from {current_status} to {target_status}"
        super().__init__(message, 'INVALID_STATE_TRANSITION', details)
        self.entity_type = entity_type
        self.current_status = current_status
        self.target_status = target_status

# ==================== SYNC PIPELINE ERRORS ====================

class TransientFetchError(PosSyncException):
    """POS API tidak bisa dihubungi atau membalas non-2xx. Aman untuk di-retry."""
    http_status = 502

    def __init__(self, message, status_code=None, response_text=None, details=None):
        super().__init__(message, 'TRANSIENT_FETCH_ERROR', details)
        self.status_code = status_code
        self.response_text = response_text

class DataShapeError(PosSyncException):
    """Payload dari POS tidak sesuai bentuk yang diharapkan"""
    http_status = 502

    def __init__(self, message, row_index=None, details=None):
        super().__init__(message, 'DATA_SHAPE_ERROR', details)
        self.row_index = row_index

class PersistenceError(PosSyncException):
    """Gagal menulis ke storage di tengah unit of work"""
    def __init__(self, message, operation=None, details=None):
        super().__init__(message, 'PERSISTENCE_ERROR', details)
        self.operation = operation

# ==================== ERP PROTOCOL ERRORS ====================

class ProtocolViolation(PosSyncException):
    """Panggilan confirm-pull yang ditolak; tidak ada state yang diubah"""
    http_status = 400

    def __init__(self, message, snapshot_id=None, details=None):
        super().__init__(message, 'PROTOCOL_VIOLATION', details)
        self.snapshot_id = snapshot_id

class SnapshotNotFoundError(ProtocolViolation):
    http_status = 404

    def __init__(self, snapshot_id, details=None):
        super().__init__("Snapshot not found", snapshot_id, details)

class SnapshotAccessError(ProtocolViolation):
    http_status = 403

    def __init__(self, snapshot_id, details=None):
        super().__init__("Access denied - snapshot belongs to different company", snapshot_id, details)

class SnapshotAlreadyConfirmedError(ProtocolViolation):
    http_status = 409

    def __init__(self, snapshot_id, confirmed_at=None, details=None):
        super().__init__("Snapshot already confirmed", snapshot_id, details)
        self.confirmed_at = confirmed_at

# ==================== GENERIC ERRORS ====================

class AuthenticationError(PosSyncException):
    """Error untuk authentication failures"""
    http_status = 401

    def __init__(self, message="Authentication failed", details=None):
        super().__init__(message, 'AUTHENTICATION_ERROR', details)

class AuthorizationError(PosSyncException):
    """Error untuk authorization failures"""
    http_status = 403

    def __init__(self, message="Access denied", details=None):
        super().__init__(message, 'AUTHORIZATION_ERROR', details)

class NotFoundError(PosSyncException):
    """Error ketika resource tidak ditemukan"""
    http_status = 404

    def __init__(self, resource_type, resource_id, details=None):
        message = f"{resource_type} with ID {resource_id} not found"
        super().__init__(message, 'NOT_FOUND', details)
        self.resource_type = resource_type
        self.resource_id = resource_id

class ConflictError(PosSyncException):
    """Error untuk resource conflicts"""
    http_status = 409

    def __init__(self, message, resource_type=None, details=None):
        super().__init__(message, 'CONFLICT_ERROR', details)
        self.resource_type = resource_type
