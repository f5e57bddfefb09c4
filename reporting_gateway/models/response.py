"""Response models for the reporting gateway."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorCode(str, Enum):
    """Stable error codes returned in the ``error`` field."""

    INVALID_JSON = "invalid_json"
    REPORT_REQUIRED = "report_required"
    REPORT_NOT_SUPPORTED = "report_not_supported"
    INVALID_FROM_DATE = "invalid_from_date"
    INVALID_TO_DATE = "invalid_to_date"
    INVALID_LIMIT = "invalid_limit"
    QUERY_FAILED = "query_failed"
    MISSING_TOKEN = "missing_token"
    INVALID_TOKEN = "invalid_token"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    INTERNAL_ERROR = "internal_error"


class ErrorResponse(BaseModel):
    """Error body: always carries an ``error`` code."""

    error: ErrorCode
    message: Optional[str] = None
    correlation_id: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "forbidden",
                "message": "admin role required",
                "correlation_id": "123e4567-e89b-12d3-a456-426614174000",
            }
        }
    )


class ReportResponse(BaseModel):
    """Successful report generation."""

    report: str
    params: Dict[str, Any] = Field(default_factory=dict)
    generated_at: str
    data: Any = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "report": "top_products",
                "params": {"period": "last_week", "limit": 3},
                "generated_at": "2024-01-10T10:30:00.000Z",
                "data": [{"product_name": "Coffee", "total_quantity": 42}],
            }
        }
    )


class StatusResponse(BaseModel):
    """Status endpoint response."""

    status: str
    timestamp: str
    available_reports: List[str]


class ReportDescriptor(BaseModel):
    """One entry of the report schema listing."""

    name: str
    description: str
    params: Dict[str, Any]


class SchemaResponse(BaseModel):
    """Static listing of the available reports and their parameters."""

    reports: List[ReportDescriptor]
