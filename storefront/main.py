# storefront/main.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
from contextlib import asynccontextmanager
from typing import Optional

from storefront.config import Settings, get_settings
from storefront.core.errors import InvalidInput, StoreError
from storefront.database import FileBackedDB
from storefront.api.routes import auth as auth_routes
from storefront.api.routes import categories as category_routes
from storefront.api.routes import products as product_routes
from storefront.api.routes import cart as cart_routes
from storefront.api.routes import orders as order_routes
from storefront.middleware.cors_config import configure_cors
from storefront.middleware.security_headers import add_security_headers
from storefront.services.payment import build_gateway


logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context: run startup checks before the app starts serving.
    """
    db: FileBackedDB = app.state.db
    users_path = db.table_path("users")
    if not users_path.exists():
        logger.warning(
            "Users file not found at %s; create an admin with scripts/create_admin.py.",
            users_path,
        )
    else:
        logger.info("Using data dir: %s", db.data_dir)
    yield
    logger.info("Shutting down Storefront API")


def _error_body(code: str, message: str) -> dict:
    return {"error": message, "code": code}


def add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{where}: {first.get('msg')}" if where else "Invalid request"
        return JSONResponse(status_code=InvalidInput.status_code, content=_error_body(InvalidInput.code, message))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        # never leak internals; the traceback goes to the log
        logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
        return JSONResponse(status_code=500, content=_error_body("INTERNAL", "Internal server error"))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.getLogger("storefront").setLevel(settings.LOG_LEVEL.upper())

    app = FastAPI(title="Storefront API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = FileBackedDB(
        settings.DATA_DIR,
        table_files=settings.table_files(),
        lock_timeout=settings.LOCK_TIMEOUT_SECONDS,
    )
    app.state.payment_gateway = build_gateway(settings.PAYMENT_PROVIDER)

    configure_cors(app, settings.CORS_ORIGINS)
    add_security_headers(app)
    add_exception_handlers(app)

    app.include_router(auth_routes.router)
    app.include_router(category_routes.router)
    app.include_router(product_routes.router)
    app.include_router(cart_routes.router)
    app.include_router(order_routes.router)

    @app.get("/", tags=["root"])
    async def root():
        return {"status": "ok", "service": "Storefront API"}

    return app


app = create_app()
