"""Local JWT validation for identity-service-issued access tokens."""

import logging
from typing import Any, Dict, Optional

from jose import JWTError, jwt

logger = logging.getLogger(__name__)


class JWTService:
    """Service for JWT token validation and claims extraction."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", audience: Optional[str] = "authenticated"):
        """Initialize JWT service.

        Args:
            secret_key: Signing secret shared with the identity service
            algorithm: JWT algorithm (default: HS256)
            audience: Expected ``aud`` claim, or None to skip the check
        """
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience

    def validate_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Validate JWT token and extract claims.

        Signature and expiry are checked by ``jose``; a token without a
        subject is rejected.

        Args:
            token: JWT token string

        Returns:
            Dict of claims if valid, None otherwise
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )

            if not self.get_user_id(payload):
                logger.warning("Token missing sub claim")
                return None

            return payload

        except JWTError as e:
            logger.warning(f"JWT validation failed: {e}")
            return None

    def get_user_id(self, payload: Dict[str, Any]) -> Optional[str]:
        """Extract the user id from token payload.

        Args:
            payload: Token payload

        Returns:
            User ID or None
        """
        return payload.get("sub") or payload.get("user_id")

    def get_role_claim(self, payload: Dict[str, Any]) -> Optional[str]:
        """Extract the application role claim.

        The top-level ``role`` claim is the database role (``authenticated``),
        so only the metadata claims are consulted.

        Args:
            payload: Token payload or user record

        Returns:
            Role string or None
        """
        return extract_role_claim(payload)


def extract_role_claim(record: Dict[str, Any]) -> Optional[str]:
    """Read ``user_metadata.role``, falling back to ``app_metadata.role``."""
    for key in ("user_metadata", "app_metadata"):
        metadata = record.get(key)
        if isinstance(metadata, dict):
            role = metadata.get("role")
            if isinstance(role, str) and role:
                return role
    return None
