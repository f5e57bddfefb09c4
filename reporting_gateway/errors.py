"""Exception hierarchy mapped onto the gateway's error contract."""

from typing import Optional

from fastapi import status

from reporting_gateway.models.response import ErrorCode


class GatewayError(Exception):
    """Base error carrying the response code and HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, code: ErrorCode, message: Optional[str] = None):
        super().__init__(message or code.value)
        self.code = code
        self.message = message


class Unauthenticated(GatewayError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(GatewayError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: Optional[str] = None):
        super().__init__(ErrorCode.FORBIDDEN, message)


class RateLimited(GatewayError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: Optional[str] = None):
        super().__init__(ErrorCode.RATE_LIMITED, message)


class InvalidRequest(GatewayError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidDateRange(InvalidRequest):
    """A from/to value is missing, unparseable or out of order."""

    def __init__(self, field: str, message: Optional[str] = None):
        code = ErrorCode.INVALID_FROM_DATE if field == "from" else ErrorCode.INVALID_TO_DATE
        super().__init__(code, message)
        self.field = field


class QueryFailed(InvalidRequest):
    """Downstream RPC failure (error or timeout), surfaced as a client error."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(ErrorCode.QUERY_FAILED, message)
