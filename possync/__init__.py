"""
POS Sync Application Factory
============================

Pusat perakitan aplikasi FastAPI menggunakan Application Factory Pattern.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import time
import uuid

# Import semua router dari modulnya masing-masing
from .routes import erp_router, sync_router, company_router

from .services.exceptions import PosSyncException
from .responses import APIResponse
from .config import settings, setup_logging
from .database import init_models

logger = logging.getLogger(__name__)

def setup_middleware(app: FastAPI):
    """Setup semua middleware aplikasi."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.ALLOWED_HOSTS
    )

    @app.middleware("http")
    async def add_request_id_and_process_time(request: Request, call_next):
        request_id = str(uuid.uuid4())
        start_time = time.time()

        request.state.request_id = request_id
        response = await call_next(request)

        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        response.headers["X-Request-ID"] = request_id
        return response

def _error_response(request: Request, status_code: int, message: str, error_code=None, details=None):
    content = APIResponse.error(
        message=message,
        error_code=error_code,
        details=details,
        request_id=getattr(request.state, 'request_id', None)
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))

def setup_exception_handlers(app: FastAPI):
    """Setup semua custom exception handlers."""

    @app.exception_handler(PosSyncException)
    async def pos_sync_exception_handler(request: Request, exc: PosSyncException):
        if exc.http_status >= 500:
            logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
        return _error_response(request, exc.http_status, exc.message, exc.error_code, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error_response(
            request, status.HTTP_400_BAD_REQUEST, "Invalid request", 'VALIDATION_ERROR',
            {'errors': exc.errors()}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}")
        return _error_response(
            request, status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred", 'INTERNAL_ERROR'
        )

def setup_routes(app: FastAPI):
    """Daftarkan (include) semua router ke aplikasi."""
    # Endpoint sistem
    @app.get("/health", tags=["System"])
    async def health_check():
        return {"status": "healthy", "timestamp": time.time()}

    @app.get("/", tags=["System"])
    async def root():
        return {"message": "POS Sync API", "version": "1.0.0", "docs": "/docs"}

    app.include_router(erp_router, prefix="/api/erp", tags=["ERP"])
    app.include_router(sync_router, prefix="/api/sync", tags=["Sync"])
    app.include_router(company_router, prefix="/api/companies", tags=["Companies"])

def create_app(enable_scheduler: bool = None, pos_fetcher=None) -> FastAPI:
    """
    Application Factory: Membuat dan mengkonfigurasi instance FastAPI.

    ``pos_fetcher`` menggantikan PosClient default (dipakai test).
    """
    if enable_scheduler is None:
        enable_scheduler = settings.SCHEDULER_ENABLED

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Kode yang dijalankan saat startup
        setup_logging()
        await init_models()
        logger.info("POS Sync API starting up")

        if enable_scheduler:
            from .workers import SyncScheduler

            app.state.scheduler = SyncScheduler(pos_fetcher=pos_fetcher)
            app.state.scheduler.start()
        yield
        # Kode yang dijalankan saat shutdown
        if app.state.scheduler is not None:
            await app.state.scheduler.stop()
        logger.info("POS Sync API shutting down")

    # 1. Buat instance FastAPI
    app = FastAPI(
        title="POS Sync API",
        description="Sinkronisasi transaksi POS ke ERP: versioning, summary dan snapshot/delta",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.scheduler = None
    app.state.pos_fetcher = pos_fetcher

    # 2. Setup Middleware
    setup_middleware(app)

    # 3. Setup Exception Handlers
    setup_exception_handlers(app)

    # 4. Setup Routes
    setup_routes(app)

    return app
