from typing import Dict, Optional

from fastapi.responses import JSONResponse

from models import ErrorDetail, ErrorResponse

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}


class APIError(Exception):
    """Error with an HTTP status, rendered as {"error": {"message": ...}}."""
    def __init__(
        self,
        status_code: int,
        message: str,
        cause: Optional[BaseException] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.status_code = status_code
        self.message = message
        self.cause = cause
        self.headers = headers or {}
        super().__init__(message)


def json_response(status_code: int, content, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=content,
        headers={**CORS_HEADERS, **(headers or {})},
    )


def error_response(
    status_code: int,
    message: str,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Create a standardized error response."""
    payload = ErrorResponse(error=ErrorDetail(message=message))
    return json_response(status_code, payload.model_dump(), headers)
