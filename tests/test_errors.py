"""Tests for the error taxonomy and its rendering."""

import json

import pytest

from reporting_gateway.errors import (
    Forbidden,
    InvalidDateRange,
    QueryFailed,
    RateLimited,
    Unauthenticated,
)
from reporting_gateway.models.response import ErrorCode
from reporting_gateway.services.error_service import ErrorService


@pytest.mark.parametrize(
    "exc,status_code,code",
    [
        (Unauthenticated(ErrorCode.MISSING_TOKEN), 401, "missing_token"),
        (Unauthenticated(ErrorCode.INVALID_TOKEN), 401, "invalid_token"),
        (Forbidden(), 403, "forbidden"),
        (RateLimited(), 429, "rate_limited"),
        (InvalidDateRange("from"), 400, "invalid_from_date"),
        (InvalidDateRange("to"), 400, "invalid_to_date"),
        (QueryFailed(), 400, "query_failed"),
    ],
)
def test_from_exception_status_and_code(exc, status_code, code):
    response = ErrorService.from_exception(exc)

    assert response.status_code == status_code
    assert json.loads(response.body) == {"error": code}


def test_from_exception_carries_message_headers_and_correlation_id():
    response = ErrorService.from_exception(
        Forbidden("admin role required"),
        "corr-7",
        headers={"Retry-After": "3"},
    )

    assert json.loads(response.body) == {
        "error": "forbidden",
        "message": "admin role required",
        "correlation_id": "corr-7",
    }
    assert response.headers["Retry-After"] == "3"


@pytest.mark.asyncio
async def test_non_admin_rejection_message(client, cashier_headers):
    response = await client.get("/reporting/status", headers=cashier_headers)

    assert response.status_code == 403
    assert response.json()["message"] == "admin role required"
