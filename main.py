"""
Loopcraft Storefront - Application Entry Point
================================================
FastAPI app initialization, logging, exception handlers, middleware, and
router registration.
"""

import logging
import time as _time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from config.database import Base, engine
from common.exceptions import ShopError, RateLimitedError
from common.security import RateLimiter

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("loopcraft.app")


# ==========================================
# Import ALL models so Alembic/Base can see them
# ==========================================
from modules.catalog.models import Product  # noqa: F401,E402
from modules.cart.models import Cart, CartItem  # noqa: F401,E402
from modules.coupon.models import Coupon  # noqa: F401,E402
from modules.order.models import Order, OrderItem, OrderStatusLog  # noqa: F401,E402

# ==========================================
# Import routers
# ==========================================
from modules.auth.routes import router as auth_router  # noqa: E402
from modules.catalog.routes import router as catalog_router  # noqa: E402
from modules.catalog.admin_routes import router as catalog_admin_router  # noqa: E402
from modules.cart.routes import router as cart_router  # noqa: E402
from modules.coupon.routes import router as coupon_api_router  # noqa: E402
from modules.coupon.admin_routes import router as coupon_admin_router  # noqa: E402
from modules.order.routes import router as order_router  # noqa: E402
from modules.order.admin_routes import router as order_admin_router  # noqa: E402
from modules.payment.routes import router as payment_router  # noqa: E402
from modules.admin.routes import router as admin_router  # noqa: E402


# ==========================================
# Exception handlers: {"success": false, "message": ...}
# ==========================================

def _error(message: str, status_code: int, headers: dict = None) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=status_code, headers=headers)


async def shop_error_handler(request: Request, exc: ShopError):
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return _error(exc.message, exc.status_code, headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return _error("Invalid request", 400)
    first = errors[0]
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    msg = first.get("msg", "Invalid value")
    return _error(f"{field}: {msg}" if field else msg, 400)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error(message, exc.status_code, getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error("Internal server error", 500)


# ==========================================
# Create App
# ==========================================

@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.SHOP_NAME} API {settings.APP_VERSION} started")
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title=f"{settings.SHOP_NAME} Storefront API",
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    # One limiter per app instance
    app.state.rate_limiter = RateLimiter(
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )

    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials="*" not in settings.CORS_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def request_logger(request: Request, call_next):
        """Log method, path, status and timing; no-cache on admin responses."""
        start = _time.time()
        response = await call_next(request)
        elapsed_ms = int((_time.time() - start) * 1000)

        path = request.url.path
        if path.startswith("/admin/"):
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        if path != "/health":
            logger.info(f"{request.method} {path} {response.status_code} {elapsed_ms}ms")
        return response

    # ==========================================
    # Register Routers
    # ==========================================
    app.include_router(auth_router)
    app.include_router(catalog_router)
    app.include_router(catalog_admin_router)
    app.include_router(cart_router)
    app.include_router(coupon_api_router)
    app.include_router(coupon_admin_router)
    app.include_router(order_router)
    app.include_router(order_admin_router)
    app.include_router(payment_router)
    app.include_router(admin_router)

    # ==========================================
    # Health check
    # ==========================================
    @app.get("/health")
    async def health():
        return {"status": "ok", "version": settings.APP_VERSION}

    return app


app = create_app()
