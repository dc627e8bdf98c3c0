"""
POS Sync Services Module
========================

Services layer untuk sinkronisasi POS -> ERP
Menggunakan dependency injection pattern untuk service management
"""

from .base import BaseService, CRUDService, transactional
from .exceptions import *

# Company Domain
from .company_service import CompanyService

# Sync Domain
from .sync import (
    VersioningService, SummaryService, SnapshotService, SyncService
)

# Integration Domain
from .integration import (
    ERPService, PosClient
)

__all__ = [
    # Base Classes
    'BaseService', 'CRUDService', 'transactional',

    # Company Domain
    'CompanyService',

    # Sync Domain
    'VersioningService', 'SummaryService', 'SnapshotService', 'SyncService',

    # Integration Domain
    'ERPService', 'PosClient',

    'ServiceRegistry', 'create_service_registry',
]


class ServiceRegistry:
    """
    Service Registry untuk dependency injection
    Mengelola lifecycle dan dependencies antar services
    """

    def __init__(self, db_session, config: dict, current_user: str = None, pos_fetcher=None):
        self.db_session = db_session
        self.config = config
        self.current_user = current_user
        self.pos_fetcher = pos_fetcher
        self._services = {}

        # Initialize core services first
        self._init_core_services()

        # Initialize domain services
        self._init_domain_services()

    def _init_core_services(self):
        """Initialize core services yang diperlukan services lain"""

        self._services['company'] = CompanyService(
            db_session=self.db_session,
            current_user=self.current_user
        )

        self._services['summary'] = SummaryService(
            db_session=self.db_session,
            current_user=self.current_user
        )

        self._services['versioning'] = VersioningService(
            db_session=self.db_session,
            current_user=self.current_user
        )

        self._services['snapshot'] = SnapshotService(
            db_session=self.db_session,
            current_user=self.current_user,
            summary_service=self._services['summary']
        )

    def _init_domain_services(self):
        """Initialize domain services dengan dependencies"""

        if self.pos_fetcher is None:
            self.pos_fetcher = PosClient(
                timeout=self.config.get('POS_REQUEST_TIMEOUT'),
                query_template=self.config.get('POS_SALES_QUERY')
            )

        self._services['sync'] = SyncService(
            db_session=self.db_session,
            pos_fetcher=self.pos_fetcher,
            current_user=self.current_user,
            versioning_service=self._services['versioning'],
            summary_service=self._services['summary'],
            snapshot_service=self._services['snapshot']
        )

        self._services['erp'] = ERPService(
            db_session=self.db_session,
            current_user=self.current_user,
            snapshot_service=self._services['snapshot']
        )

    def get_service(self, service_name: str):
        """Get service by name"""
        if service_name not in self._services:
            raise ValueError(f"Service '{service_name}' not found")
        return self._services[service_name]

    # Convenience methods untuk frequently used services
    @property
    def company_service(self) -> CompanyService:
        return self._services['company']

    @property
    def sync_service(self) -> SyncService:
        """Get SyncService - orkestrator utama"""
        return self._services['sync']

    @property
    def snapshot_service(self) -> SnapshotService:
        return self._services['snapshot']

    @property
    def summary_service(self) -> SummaryService:
        return self._services['summary']

    @property
    def erp_service(self) -> ERPService:
        """Get ERPService"""
        return self._services['erp']


# Factory function untuk easy service registry creation
def create_service_registry(db_session, config: dict, current_user: str = None,
                            pos_fetcher=None) -> ServiceRegistry:
    """Factory function untuk membuat ServiceRegistry"""
    return ServiceRegistry(db_session, config, current_user, pos_fetcher)
