from .company_routes import router as company_router

__all__ = ['company_router']
