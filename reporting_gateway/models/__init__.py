"""Pydantic models for the reporting gateway."""

from reporting_gateway.models.request import (
    CallerIdentity,
    DateRange,
    ReportName,
    ReportParams,
    ReportRequest,
)
from reporting_gateway.models.response import (
    ErrorCode,
    ErrorResponse,
    ReportDescriptor,
    ReportResponse,
    SchemaResponse,
    StatusResponse,
)

__all__ = [
    "CallerIdentity",
    "DateRange",
    "ReportName",
    "ReportParams",
    "ReportRequest",
    "ErrorCode",
    "ErrorResponse",
    "ReportDescriptor",
    "ReportResponse",
    "SchemaResponse",
    "StatusResponse",
]
