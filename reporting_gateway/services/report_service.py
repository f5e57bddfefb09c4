"""Report orchestration: date range, procedure parameters, RPC, audit."""

import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional

from reporting_gateway.models.request import CallerIdentity, ReportName, ReportParams
from reporting_gateway.services.audit_service import AuditLogger, build_audit_record
from reporting_gateway.services.date_range import resolve_date_range
from reporting_gateway.services.rpc_dispatcher import RpcDispatcher, RpcResult

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 3
MAX_LIMIT = 100

PROCEDURES = {
    ReportName.TOP_PRODUCTS: "reports.top_products",
    ReportName.SALES_BY_CATEGORY: "reports.sales_by_category",
    ReportName.SALES_SUMMARY: "reports.sales_summary",
}


def coerce_limit(value: Any) -> Optional[float]:
    """Numeric value of ``limit``, or None when absent or non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def clamp_limit(value: Any) -> int:
    """Effective top_products limit: ``clamp(value, 1, 100)``, defaulting to 3.

    Zero counts as absent.
    """
    number = coerce_limit(value)
    if number is None or number == 0:
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, int(number)))


class ReportService:
    """One orchestrator per report kind, sharing range resolution and auditing."""

    def __init__(self, dispatcher: RpcDispatcher, audit_logger: Optional[AuditLogger] = None):
        self.dispatcher = dispatcher
        self.audit_logger = audit_logger

    def _base_params(self, params: ReportParams, now: Optional[datetime]) -> Dict[str, Any]:
        date_range = resolve_date_range(params.period, params.from_, params.to, now=now)
        return {
            "p_from": date_range.start,
            "p_to": date_range.end,
            "p_store_id": params.store_id or None,
        }

    def _audit(
        self,
        report_name: ReportName,
        raw_params: Dict[str, Any],
        caller: Optional[CallerIdentity],
        result: RpcResult,
    ):
        if not result.ok or caller is None or self.audit_logger is None:
            return
        try:
            self.audit_logger.submit(build_audit_record(caller.user_id, report_name.value, raw_params))
        except Exception as e:
            logger.debug(f"Audit submission failed: {e}")

    async def _run(
        self,
        report_name: ReportName,
        rpc_params: Dict[str, Any],
        raw_params: Dict[str, Any],
        caller: Optional[CallerIdentity],
    ) -> RpcResult:
        result = await self.dispatcher.call(PROCEDURES[report_name], rpc_params)
        self._audit(report_name, raw_params, caller, result)
        return result

    async def generate_top_products(
        self,
        params: ReportParams,
        caller: Optional[CallerIdentity] = None,
        raw_params: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> RpcResult:
        rpc_params = self._base_params(params, now)
        rpc_params["p_limit"] = clamp_limit(params.limit)
        return await self._run(ReportName.TOP_PRODUCTS, rpc_params, raw_params or {}, caller)

    async def generate_sales_by_category(
        self,
        params: ReportParams,
        caller: Optional[CallerIdentity] = None,
        raw_params: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> RpcResult:
        rpc_params = self._base_params(params, now)
        return await self._run(ReportName.SALES_BY_CATEGORY, rpc_params, raw_params or {}, caller)

    async def generate_sales_summary(
        self,
        params: ReportParams,
        caller: Optional[CallerIdentity] = None,
        raw_params: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> RpcResult:
        rpc_params = self._base_params(params, now)
        return await self._run(ReportName.SALES_SUMMARY, rpc_params, raw_params or {}, caller)

    async def generate(
        self,
        report_name: ReportName,
        params: ReportParams,
        caller: Optional[CallerIdentity] = None,
        raw_params: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> RpcResult:
        """Dispatch to the orchestrator for ``report_name``.

        Raises:
            InvalidDateRange: If the explicit bounds cannot be resolved
        """
        generators = {
            ReportName.TOP_PRODUCTS: self.generate_top_products,
            ReportName.SALES_BY_CATEGORY: self.generate_sales_by_category,
            ReportName.SALES_SUMMARY: self.generate_sales_summary,
        }
        return await generators[report_name](params, caller=caller, raw_params=raw_params, now=now)
