# Standard library imports
from contextlib import asynccontextmanager

# Third-party imports
import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import (
    HTTPException as StarletteHTTPException,
    RequestValidationError,
)
from fastapi.middleware.cors import CORSMiddleware

# Local imports
from gym_portal.api.dependencies.portal import flow_payload
from gym_portal.api.v1.routes.router import router as api_v1_router
from gym_portal.core.config import settings
from gym_portal.core.exceptions import (
    AuthenticationExpired,
    BackendError,
    FormValidationError,
    MissingCredentials,
    PortalError,
)
from gym_portal.core.logging_config import get_logger
from gym_portal.core.response import error_response, field_errors_response, validation_error_response
from gym_portal.db.deps import AsyncSessionLocal, init_store
from gym_portal.services.api_client import BackendClient
from gym_portal.services.payments.registry import PaymentViewRegistry
from gym_portal.services.payments.session_cache import PaymentSessionCache
from gym_portal.services.payments.view import PaymentView
from gym_portal.services.storage import SqlKeyValueStore

logger = get_logger("main")


def build_state(app: FastAPI, store, backend_client: BackendClient) -> None:
    """Attach the shared portal objects to ``app.state``."""
    cache = PaymentSessionCache(store, backend_client)
    app.state.store = store
    app.state.backend_client = backend_client
    app.state.payment_cache = cache
    app.state.payment_views = PaymentViewRegistry(
        lambda order_id: PaymentView(order_id, backend_client, cache)
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown operations."""
    # Startup: local store tables and shared backend client
    await init_store()
    store = SqlKeyValueStore(AsyncSessionLocal)
    backend_client = BackendClient(store)
    build_state(app, store, backend_client)
    logger.info(f"Portal started against backend {settings.BACKEND_API_URL}")
    yield
    # Shutdown: no payment timer may outlive the app
    await app.state.payment_views.close_all()
    await backend_client.aclose()
    logger.info("Portal shut down")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with logging"""
        msg = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        logger.warning(
            f"HTTP Exception: {exc.status_code} - {msg}",
            extra={
                "status_code": exc.status_code,
                "path": request.url.path,
                "method": request.method,
            }
        )
        return error_response(msg, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Validation error handler with structured error details"""
        error_count = len(exc.errors())
        logger.warning(
            f"Validation Error: {error_count} field(s) failed validation",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error_count": error_count,
            }
        )
        return validation_error_response(exc.errors(), status_code=422)

    @app.exception_handler(FormValidationError)
    async def form_validation_handler(request: Request, exc: FormValidationError):
        return field_errors_response(exc.field_errors, msg=exc.message, data=flow_payload(request))

    @app.exception_handler(AuthenticationExpired)
    async def auth_expired_handler(request: Request, exc: AuthenticationExpired):
        redirect = {"path": exc.redirect_to} if exc.redirect_to else None
        return error_response(
            exc.message,
            data={"redirect": redirect, "clear_token": True},
            status_code=401,
            error_code="SESSION_EXPIRED",
        )

    @app.exception_handler(MissingCredentials)
    async def missing_credentials_handler(request: Request, exc: MissingCredentials):
        return error_response(exc.message, status_code=401, error_code="NOT_AUTHENTICATED")

    @app.exception_handler(BackendError)
    async def backend_error_handler(request: Request, exc: BackendError):
        status_code = exc.status_code if 400 <= exc.status_code < 500 else 502
        logger.warning(f"Backend error on {request.url.path}: {exc.status_code} {exc.message}")
        return error_response(exc.message, data=flow_payload(request), status_code=status_code)

    @app.exception_handler(httpx.HTTPError)
    async def backend_unreachable_handler(request: Request, exc: httpx.HTTPError):
        logger.error(f"Backend unreachable on {request.url.path}: {exc.__class__.__name__}: {exc}")
        return error_response(
            "The membership service is unavailable. Please try again.",
            data=flow_payload(request),
            status_code=502,
            error_code="BACKEND_UNAVAILABLE",
        )

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        logger.error(f"Unhandled portal error on {request.url.path}: {exc}")
        return error_response(str(exc) or "Unexpected error", status_code=500)


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Gym Membership Portal API",
        description="Registration, renewal, payment tracking and admin dashboard for gym members",
        version="1.0.0",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan if use_lifespan else None,
    )

    # Include the router with prefix
    app.include_router(api_v1_router, prefix="/api/v1")
    register_exception_handlers(app)

    logger.info(f"Configuring CORS middleware with origins: {settings.ALLOWED_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=settings.ALLOW_CREDENTIALS,
        allow_methods=settings.ALLOWED_METHODS,
        allow_headers=settings.ALLOWED_HEADERS,
    )
    return app


app = create_app()


# Run the app
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
