# realestate/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from realestate.core.config import settings
from realestate.core.db import Base, engine
from realestate.core.errors import AppError, SessionExpired
from realestate.core.manage import init_db
from realestate.core.response import fail
from realestate.routers.auth import clear_session_cookie
from realestate.routers.auth import router as auth_router
from realestate.routers.health import router as health_router
from realestate.routers.messages import router as messages_router
from realestate.routers.posts import router as posts_router
from realestate.routers.uploads import files_router
from realestate.routers.uploads import router as uploads_router
from realestate.routers.users import router as users_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(
        "database ready backend=%s tables=%s",
        engine.url.get_backend_name(),
        sorted(Base.metadata.tables),
    )
    yield


app = FastAPI(title="Real Estate Social API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


routers = [
    health_router,
    auth_router,
    users_router,
    posts_router,
    uploads_router,
    files_router,
    messages_router,
]

for r in routers:
    app.include_router(r)


# ---------- error envelope ----------

def _field_name(loc) -> str:
    # drop the "body" / "query" / "path" prefix
    parts = [str(p) for p in loc[1:]] or [str(p) for p in loc]
    return ".".join(parts)


def _error_message(err: dict) -> str:
    msg = err.get("msg", "Invalid value")
    prefix = "Value error, "
    return msg[len(prefix):] if msg.startswith(prefix) else msg


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    response = fail(exc.message, exc.status_code, exc.errors)
    if isinstance(exc, SessionExpired):
        clear_session_cookie(response)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        errors.setdefault(_field_name(err.get("loc", ())), _error_message(err))
    return fail("Validation failed", 422, errors)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = "Not found"
    elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        message = "Method not allowed"
    else:
        message = str(exc.detail)
    return fail(message, exc.status_code)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("database error on %s %s", request.method, request.url.path)
    return fail("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return fail("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)
