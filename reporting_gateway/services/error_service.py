"""Error handling and standardization service."""

import logging
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from reporting_gateway.errors import GatewayError
from reporting_gateway.models.response import ErrorCode, ErrorResponse

logger = logging.getLogger(__name__)


class ErrorService:
    """Service for error handling and standardization."""

    @staticmethod
    def create_error_response(
        code: ErrorCode,
        message: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> ErrorResponse:
        """Create standardized error response.

        Args:
            code: Error code
            message: Optional human-readable message
            correlation_id: Request correlation ID

        Returns:
            ErrorResponse object
        """
        return ErrorResponse(error=code, message=message, correlation_id=correlation_id)

    @staticmethod
    def json_response(
        status_code: int,
        code: ErrorCode,
        message: Optional[str] = None,
        correlation_id: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> JSONResponse:
        """Render an error as a JSON response, omitting empty fields."""
        error_response = ErrorService.create_error_response(code, message, correlation_id)
        return JSONResponse(
            status_code=status_code,
            content=error_response.model_dump(mode="json", exclude_none=True),
            headers=headers,
        )

    @staticmethod
    def from_exception(
        exc: GatewayError,
        correlation_id: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> JSONResponse:
        """Render a GatewayError with its own status code."""
        return ErrorService.json_response(
            status_code=exc.status_code,
            code=exc.code,
            message=exc.message,
            correlation_id=correlation_id,
            headers=headers,
        )

    @staticmethod
    def map_http_status_to_error_code(status_code: int) -> ErrorCode:
        """Map HTTP status code to error code.

        Args:
            status_code: HTTP status code

        Returns:
            ErrorCode enum
        """
        mapping = {
            401: ErrorCode.INVALID_TOKEN,
            403: ErrorCode.FORBIDDEN,
            404: ErrorCode.NOT_FOUND,
            405: ErrorCode.NOT_FOUND,
            429: ErrorCode.RATE_LIMITED,
        }
        return mapping.get(status_code, ErrorCode.INTERNAL_ERROR)

    @staticmethod
    def log_error(
        error_code: ErrorCode,
        message: str,
        correlation_id: Optional[str] = None,
        user_id: Optional[str] = None,
        path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Log error with context.

        Args:
            error_code: Error code
            message: Error message
            correlation_id: Request correlation ID
            user_id: User ID
            path: Request path
            details: Additional details
        """
        log_data = {
            "error_code": error_code.value,
            "message": message,
        }

        if correlation_id:
            log_data["correlation_id"] = correlation_id
        if user_id:
            log_data["user_id"] = user_id
        if path:
            log_data["path"] = path
        if details:
            log_data["details"] = details

        logger.error(f"Error: {log_data}")
