# storefront/api/errors.py
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.domain.errors import StorefrontError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _failure(status_code: int, message: str, **details) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"success": False, "message": message, **details}),
    )


async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return _failure(exc.status_code, exc.message, **exc.details())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    err = exc.errors()[0]
    # pierwszy element loc to "body"/"query"
    field = ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0])
    return _failure(400, f"Invalid request: {field} - {err['msg']}")


async def permission_error_handler(request: Request, exc: PermissionError):
    return _failure(403, str(exc))


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} unexpected error: {exc}")
    return _failure(500, "Internal server error")


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(PermissionError, permission_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
