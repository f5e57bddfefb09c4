"""Core services for the reporting gateway."""

from reporting_gateway.services.audit_service import AuditLogger, AuditRecord
from reporting_gateway.services.error_service import ErrorService
from reporting_gateway.services.identity_service import IdentityVerifier, VerifiedUser
from reporting_gateway.services.jwt_service import JWTService
from reporting_gateway.services.rate_limit_service import RateLimitService
from reporting_gateway.services.report_service import ReportService
from reporting_gateway.services.role_service import RoleCache, RoleResolver
from reporting_gateway.services.rpc_dispatcher import RpcDispatcher, RpcResult, RpcStatus

__all__ = [
    "AuditLogger",
    "AuditRecord",
    "ErrorService",
    "IdentityVerifier",
    "VerifiedUser",
    "JWTService",
    "RateLimitService",
    "ReportService",
    "RoleCache",
    "RoleResolver",
    "RpcDispatcher",
    "RpcResult",
    "RpcStatus",
]
