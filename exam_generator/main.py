import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .database import Base, engine
from .errors import AppError, InternalError, NotFoundError, ValidationError
from .middleware import DeprecationHeadersMiddleware
from .responses import error_response
from .routes import auth as auth_routes
from .routes import meta as meta_routes
from .routes import questions as question_routes
from .routes import subjects as subject_routes
from .routes import users_v1, users_v2

logger = logging.getLogger(__name__)

settings = get_settings()

HTTP_CODES = {
    405: "METHOD_NOT_ALLOWED",
}
ROUTE_HINT = {
    "hint": "Versões disponíveis da API: /v1, /v2",
    "availableVersions": [
        {"version": "v1", "endpoint": "/v1"},
        {"version": "v2", "endpoint": "/v2"},
    ],
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    Base.metadata.create_all(bind=engine)
    logger.info("%s %s started", settings.app_name, settings.app_version)
    yield
    engine.dispose()


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

app.add_middleware(
    DeprecationHeadersMiddleware,
    enabled=settings.v1_deprecated,
    sunset=settings.v1_sunset_date,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ─── Error formatting ─────────────────────────────────────────────────────────


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc, request.url.path)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        error = NotFoundError(f"Rota {request.method} {request.url.path} não encontrada")
        return error_response(error, request.url.path, error_fields=ROUTE_HINT)

    error = AppError(str(exc.detail))
    error.status_code = exc.status_code
    error.code = HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return error_response(error, request.url.path, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0]),
            "message": err["msg"],
            "code": err["type"],
        }
        for err in exc.errors()
    ]
    return error_response(ValidationError(details=details), request.url.path)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(InternalError(), request.url.path)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled application error", exc_info=exc)
    return error_response(InternalError(), request.url.path)


app.include_router(meta_routes.router)
app.include_router(users_v1.router)
app.include_router(subject_routes.v1_router)
app.include_router(question_routes.v1_router)
app.include_router(auth_routes.router)
app.include_router(users_v2.router)
app.include_router(subject_routes.v2_router)
app.include_router(question_routes.v2_router)
