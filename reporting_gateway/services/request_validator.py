"""Validation of generate request bodies."""

import json
from typing import Any, Dict

from reporting_gateway.errors import InvalidRequest
from reporting_gateway.models.request import ReportName, ReportParams, ReportRequest
from reporting_gateway.models.response import ErrorCode
from reporting_gateway.services.date_range import is_valid_date
from reporting_gateway.services.report_service import coerce_limit


def _present(value: Any) -> bool:
    return value is not None and value != ""


def parse_report_request(body: bytes) -> ReportRequest:
    """Decode and validate a generate request.

    Accepts ``report`` (or ``reportType``) and an optional nested ``params``
    object with ``period``, ``from``, ``to``, ``limit`` and ``store_id``.

    Raises:
        InvalidRequest: With the error code describing the first problem found
    """
    try:
        payload = json.loads(body or b"")
    except (ValueError, UnicodeDecodeError):
        raise InvalidRequest(ErrorCode.INVALID_JSON) from None
    if not isinstance(payload, dict):
        raise InvalidRequest(ErrorCode.INVALID_JSON, "request body must be a JSON object")

    report_type = payload.get("report") or payload.get("reportType")
    if not report_type:
        raise InvalidRequest(ErrorCode.REPORT_REQUIRED, "expected {\"report\": string}")
    try:
        report_name = ReportName(report_type)
    except (ValueError, TypeError):
        raise InvalidRequest(ErrorCode.REPORT_NOT_SUPPORTED) from None

    raw_params = payload.get("params") or {}
    if not isinstance(raw_params, dict):
        raise InvalidRequest(ErrorCode.INVALID_JSON, "params must be a JSON object")

    return ReportRequest(report_name=report_name, params=validate_params(raw_params), raw_params=raw_params)


def validate_params(raw_params: Dict[str, Any]) -> ReportParams:
    """Check the individual parameters and build the canonical model."""
    from_value = raw_params.get("from")
    to_value = raw_params.get("to")
    if _present(from_value) and not is_valid_date(from_value):
        raise InvalidRequest(ErrorCode.INVALID_FROM_DATE)
    if _present(to_value) and not is_valid_date(to_value):
        raise InvalidRequest(ErrorCode.INVALID_TO_DATE)

    limit = raw_params.get("limit")
    # a numeric zero means "not given", like null
    if _present(limit) and limit != 0:
        number = coerce_limit(limit)
        if number is None or number <= 0:
            raise InvalidRequest(ErrorCode.INVALID_LIMIT, "limit must be a positive number")
    else:
        limit = None

    period = raw_params.get("period")
    store_id = raw_params.get("store_id")
    return ReportParams(
        period=period if isinstance(period, str) else None,
        from_=from_value or None,
        to=to_value or None,
        limit=limit,
        store_id=str(store_id) if _present(store_id) else None,
    )
