import logging
from typing import Any, Dict, Iterable, List

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

_SOURCES = {"body", "query", "path", "header", "cookie"}
_VALUE_ERROR_PREFIX = "Value error, "


def field_errors(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic errors into ``{field, message}`` pairs."""
    result = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in _SOURCES]
        message = err.get("msg", "Invalid value.")
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        result.append({"field": ".".join(loc) or "body", "message": message})
    return result


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": field_errors(exc.errors())},
    )


async def persistence_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Unhandled database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )
