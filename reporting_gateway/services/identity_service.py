"""Bearer credential verification."""

import logging
from dataclasses import dataclass
from typing import Optional

from reporting_gateway.clients.auth_client import AuthClient
from reporting_gateway.services.jwt_service import JWTService, extract_role_claim

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedUser:
    """Outcome of a successful verification."""

    user_id: str
    role_claim: Optional[str] = None


def parse_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    """Return the credential from a ``Bearer <token>`` header, or None."""
    if not auth_header:
        return None
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


class IdentityVerifier:
    """Verifies credentials locally (JWT secret) or against the identity service."""

    def __init__(self, auth_client: Optional[AuthClient] = None, jwt_service: Optional[JWTService] = None):
        if auth_client is None and jwt_service is None:
            raise ValueError("IdentityVerifier needs an auth client or a JWT service")
        self.auth_client = auth_client
        self.jwt_service = jwt_service

    async def verify(self, token: str) -> Optional[VerifiedUser]:
        """Verify a credential.

        Args:
            token: Bearer credential

        Returns:
            VerifiedUser, or None when the credential is rejected
        """
        if self.jwt_service is not None:
            payload = self.jwt_service.validate_token(token)
            if not payload:
                return None
            return VerifiedUser(
                user_id=str(self.jwt_service.get_user_id(payload)),
                role_claim=self.jwt_service.get_role_claim(payload),
            )

        user = await self.auth_client.get_user(token)
        if not user:
            return None
        return VerifiedUser(user_id=str(user["id"]), role_claim=extract_role_claim(user))
