"""Reporting endpoints."""

import logging

from fastapi import APIRouter, Request

from reporting_gateway.config import AVAILABLE_REPORTS
from reporting_gateway.errors import QueryFailed
from reporting_gateway.middleware import get_app_service
from reporting_gateway.models.response import (
    ReportDescriptor,
    ReportResponse,
    SchemaResponse,
    StatusResponse,
)
from reporting_gateway.services.date_range import to_iso, utc_now
from reporting_gateway.services.request_validator import parse_report_request

logger = logging.getLogger(__name__)

router = APIRouter()

PERIOD_PARAM = ["last_week", "from/to"]

REPORT_SCHEMA = SchemaResponse(
    reports=[
        ReportDescriptor(
            name="top_products",
            description="Best-selling products in a period",
            params={
                "period": PERIOD_PARAM,
                "limit": "integer (max 100)",
                "store_id": "string|null",
                "format": ["json"],
            },
        ),
        ReportDescriptor(
            name="sales_by_category",
            description="Sales by category in a period",
            params={"period": PERIOD_PARAM, "store_id": "string|null", "format": ["json"]},
        ),
        ReportDescriptor(
            name="sales_summary",
            description="Sales summary for a period",
            params={"period": PERIOD_PARAM, "store_id": "string|null", "format": ["json"]},
        ),
    ]
)


@router.get("", response_model=SchemaResponse)
async def list_reports():
    """List the available reports and their parameters."""
    return REPORT_SCHEMA


@router.get("/status", response_model=StatusResponse)
async def reporting_status():
    """Gateway status and the reports it can generate."""
    return StatusResponse(
        status="ok",
        timestamp=to_iso(utc_now()),
        available_reports=list(AVAILABLE_REPORTS),
    )


@router.post("", response_model=ReportResponse, include_in_schema=False)
@router.post("/generate", response_model=ReportResponse)
async def generate_report(request: Request):
    """Generate a report.

    Body: ``{"report": "top_products", "params": {"period": "last_week", "limit": 3}}``.
    Downstream failures and timeouts are reported as ``query_failed``.
    """
    report_request = parse_report_request(await request.body())
    report_service = get_app_service(request, "report_service")
    caller = getattr(request.state, "caller", None)

    result = await report_service.generate(
        report_request.report_name,
        report_request.params,
        caller=caller,
        raw_params=report_request.raw_params,
    )
    if not result.ok:
        logger.error(f"Report {report_request.report_name.value} failed: {result.status.value} {result.error}")
        raise QueryFailed()

    return ReportResponse(
        report=report_request.report_name.value,
        params=report_request.raw_params,
        generated_at=to_iso(utc_now()),
        data=result.data,
    )
