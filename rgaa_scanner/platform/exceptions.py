import logging
from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from rgaa_scanner.platform.response import api_response


class ScannerError(Exception):
    """Base class for errors raised by the scan core."""


class NotFoundError(ScannerError):
    pass


class UnauthorizedError(ScannerError):
    pass


class InactiveSiteError(ScannerError):
    pass


class ScanLimitError(ScannerError):
    pass


class ScanTimeoutError(ScannerError):
    pass


class FetchError(ScannerError):
    """A page could not be retrieved (network error or non-2xx response)."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status_code = status_code


_STATUS_BY_ERROR = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    UnauthorizedError: status.HTTP_403_FORBIDDEN,
    InactiveSiteError: status.HTTP_400_BAD_REQUEST,
    ScanLimitError: status.HTTP_429_TOO_MANY_REQUESTS,
}


def add_exception_handlers(app):
    @app.exception_handler(ScannerError)
    async def scanner_exception_handler(request: Request, exc: ScannerError):
        status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
        if status_code >= 500:
            logging.exception(f"Unhandled scanner error: {exc}")
        return api_response(message=str(exc) or "Error", status_code=status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return api_response(message=str(exc.detail) or "Error", status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return api_response(
            message="Validation failed",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            data={"errors": exc.errors()},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logging.exception(f"Unhandled exception: {exc}")
        return api_response(
            message="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
