"""
Exception handlers mapping domain failures onto HTTP responses
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from ..errors import SocialServiceError

logger = logging.getLogger(__name__)


async def social_error_handler(request: Request, exc: SocialServiceError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} failed: {exc.code} - {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "detail": exc.message},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(SocialServiceError, social_error_handler)
