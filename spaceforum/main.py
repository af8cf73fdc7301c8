import logging
from datetime import timedelta
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import AuthService, PasswordHasher, TokenService
from .config import DEFAULT_SECRET_KEY, Settings, get_settings
from .database import Base, create_db_engine
from .errors import ServiceError, StoreError, UnauthorizedError
from .routes import auth as auth_routes
from .routes import forum as forum_routes
from .seeds import seed_reference_data
from .store import SqlStore, Store

logger = logging.getLogger(__name__)


def build_auth_service(settings: Settings, store: Store) -> AuthService:
    return AuthService(
        store=store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        tokens=TokenService(
            secret_key=settings.secret_key,
            algorithm=settings.jwt_algorithm,
            ttl=timedelta(minutes=settings.token_ttl_minutes),
        ),
    )


def _validation_payload(exc: RequestValidationError) -> dict:
    errors = exc.errors()
    if not errors:
        return {"error": "Invalid request body"}
    loc = [str(part) for part in errors[0].get("loc", ()) if part != "body"]
    if not loc or errors[0].get("type") == "json_invalid":
        return {"error": "Malformed request body"}
    field = loc[0]
    return {"error": f"Invalid value for {field}", "field": field}


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    auth: Optional[AuthService] = None,
) -> FastAPI:
    """Build the API with explicit store and auth handles.

    Anything not passed in is built from ``settings``: a pooled SqlStore for
    ``database_url`` and an AuthService over that store.
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    if store is None:
        store = SqlStore(create_db_engine(settings.database_url, settings.db_pool_size))
    if auth is None:
        auth = build_auth_service(settings, store)

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.store = store
    app.state.auth = auth

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def on_startup() -> None:
        if settings.secret_key == DEFAULT_SECRET_KEY:
            logger.warning("JWT_SECRET is not set; using the development secret key.")

        if isinstance(store, SqlStore) and settings.create_schema:
            try:
                Base.metadata.create_all(bind=store.engine)
                seed_reference_data(store.engine)
            except SQLAlchemyError:
                logger.exception("Schema setup failed")

        try:
            store.ping()
            logger.info("Database connected successfully")
        except StoreError as exc:
            logger.error("Database connection failed: %s", exc.__cause__ or exc)

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        headers = None
        if isinstance(exc, UnauthorizedError) and exc.field is None:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(exc.to_payload(), status_code=exc.status_code, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(_validation_payload(exc), status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled application error", exc_info=exc)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    @app.get("/")
    def read_root():
        return {"message": f"{settings.app_name} server is online"}

    app.include_router(auth_routes.router)
    app.include_router(forum_routes.router)
    return app


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "spaceforum.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
