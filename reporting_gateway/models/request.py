"""Request models for the reporting gateway."""

from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ReportName(str, Enum):
    """Supported report kinds."""

    TOP_PRODUCTS = "top_products"
    SALES_BY_CATEGORY = "sales_by_category"
    SALES_SUMMARY = "sales_summary"


class CallerIdentity(BaseModel):
    """Authenticated caller, derived per request from a verified credential."""

    user_id: str
    is_admin: bool = False
    role: Optional[str] = None


class ReportParams(BaseModel):
    """Canonical report parameters (the nested ``params`` object)."""

    model_config = ConfigDict(populate_by_name=True)

    period: Optional[str] = None
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    limit: Optional[Union[int, float, str]] = None
    store_id: Optional[str] = None


class ReportRequest(BaseModel):
    """Validated body of a generate request."""

    report_name: ReportName
    params: ReportParams = Field(default_factory=ReportParams)
    raw_params: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "report": "top_products",
                "params": {"period": "last_week", "limit": 3, "store_id": None},
            }
        }
    )


class DateRange(BaseModel):
    """Concrete UTC range, ISO-8601 with millisecond precision."""

    start: str
    end: str
