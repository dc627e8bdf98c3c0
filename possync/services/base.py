"""
Base Service Classes
====================

Base classes dan utilities untuk semua services
"""

from abc import ABC, abstractmethod
from typing import Dict, Any
from functools import wraps
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from .exceptions import PosSyncException, NotFoundError, ConflictError, PersistenceError
from ..schemas.base import PaginationSchema

logger = logging.getLogger(__name__)

def transactional(func):
    """Decorator untuk automatic transaction management"""
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            result = await func(self, *args, **kwargs)
            if hasattr(self, 'db_session') and self.db_session:
                await self.db_session.commit()
            return result
        except SQLAlchemyError as e:
            if hasattr(self, 'db_session') and self.db_session:
                await self.db_session.rollback()
            logger.error(f"Transaction failed in {func.__name__}: {str(e)}")
            raise PersistenceError(
                f"Database error in {func.__name__}: {str(e)}",
                operation=func.__name__,
            ) from e
        except Exception as e:
            if hasattr(self, 'db_session') and self.db_session:
                await self.db_session.rollback()
            if not isinstance(e, PosSyncException):
                logger.error(f"Transaction failed in {func.__name__}: {str(e)}")
            raise
    return wrapper

class BaseService(ABC):
    """Base service class dengan common functionality"""

    def __init__(self, db_session: AsyncSession, current_user: str = None):
        self.db_session = db_session
        self.current_user = current_user
        self.logger = logging.getLogger(self.__class__.__name__)

    async def _get_or_404(self, model_class, entity_id: int):
        """Get entity by ID or raise 404 error"""
        result = await self.db_session.execute(select(model_class).filter(model_class.id == entity_id))
        entity = result.scalars().first()
        if not entity:
            resource_type = model_class.__name__
            raise NotFoundError(resource_type, entity_id)
        return entity

    async def _validate_unique_field(self, model_class, field_name: str, field_value: Any,
                              exclude_id: int = None, error_message: str = None):
        """Validate that field value is unique"""
        query = select(model_class).filter(getattr(model_class, field_name) == field_value)
        if exclude_id:
            query = query.filter(model_class.id != exclude_id)

        result = await self.db_session.execute(query)
        existing = result.scalars().first()
        if existing:
            message = error_message or f"{field_name} '{field_value}' already exists"
            raise ConflictError(message, model_class.__name__)

    async def _paginate_query(self, query, page: int = 1, per_page: int = 20,
                       max_per_page: int = 100):
        """Paginate query results"""
        per_page = min(per_page, max_per_page)

        # Get total count
        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.db_session.execute(count_query)
        total = total_result.scalar()

        # Calculate pagination info
        pages = (total + per_page - 1) // per_page if total > 0 else 1
        has_prev = page > 1
        has_next = page < pages

        # Get paginated results
        offset = (page - 1) * per_page
        paginated_query = query.offset(offset).limit(per_page)
        items_result = await self.db_session.execute(paginated_query)
        items = items_result.scalars().all()

        return {
            'items': items,
            'pagination': PaginationSchema(
                page=page,
                per_page=per_page,
                total=total,
                pages=pages,
                has_prev=has_prev,
                has_next=has_next
            ).model_dump()
        }

    async def _apply_filters(self, query, model_class, filters: Dict[str, Any]):
        """Apply filters to query"""
        for field, value in filters.items():
            if value is not None:
                if hasattr(model_class, field):
                    query = query.filter(getattr(model_class, field) == value)
        return query

class CRUDService(BaseService):
    """Service class dengan CRUD operations standard"""

    @property
    @abstractmethod
    def model_class(self):
        """Model class yang digunakan service ini"""
        pass

    @property
    @abstractmethod
    def create_schema(self):
        """Schema untuk create operations"""
        pass

    @property
    @abstractmethod
    def update_schema(self):
        """Schema untuk update operations"""
        pass

    @property
    @abstractmethod
    def response_schema(self):
        """Schema untuk response"""
        pass

    @transactional
    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create new entity"""
        validated_data = self.create_schema.model_validate(data).model_dump()

        entity = self.model_class(**validated_data)
        self.db_session.add(entity)
        await self.db_session.flush()  # Get ID

        return self.response_schema.model_validate(entity).model_dump()

    async def get_by_id(self, entity_id: int) -> Dict[str, Any]:
        """Get entity by ID"""
        entity = await self._get_or_404(self.model_class, entity_id)
        return self.response_schema.model_validate(entity).model_dump()

    async def list(self, page: int = 1, per_page: int = 20,
             filters: Dict[str, Any] = None) -> Dict[str, Any]:
        """List entities with pagination and filters"""
        query = select(self.model_class)

        if filters:
            query = await self._apply_filters(query, self.model_class, filters)

        query = query.order_by(self.model_class.id)

        result = await self._paginate_query(query, page, per_page)

        return {
            'items': [self.response_schema.model_validate(item).model_dump() for item in result['items']],
            'pagination': result['pagination']
        }

    @transactional
    async def update(self, entity_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Update entity"""
        entity = await self._get_or_404(self.model_class, entity_id)

        validated_data = self.update_schema.model_validate(data).model_dump(exclude_unset=True)
        for key, value in validated_data.items():
            setattr(entity, key, value)

        return self.response_schema.model_validate(entity).model_dump()
