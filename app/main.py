from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.errors import conflict_message_for
from app.core.logging import configure_logging
from app.middleware.rate_limit import RedisRateLimitMiddleware


configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, default_response_class=ORJSONResponse, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RedisRateLimitMiddleware)

app.include_router(api_router, prefix=settings.api_prefix)

Instrumentator().instrument(app).expose(app)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    errors = [
        {"loc": list(err.get("loc") or []), "msg": str(err.get("msg") or ""), "type": str(err.get("type") or "")}
        for err in exc.errors()
    ]
    return ORJSONResponse(status_code=400, content={"detail": "Invalid request", "errors": errors})


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> ORJSONResponse:
    if isinstance(exc, IntegrityError):
        message = conflict_message_for(str(exc.orig))
        if message is not None:
            logger.warning("Integrity conflict on %s %s: %s", request.method, request.url.path, message)
            return ORJSONResponse(status_code=409, content={"detail": message})
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return ORJSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
