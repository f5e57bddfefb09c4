"""Identity service client for bearer credential verification."""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class AuthClient:
    """Client for Supabase Auth interactions."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize auth client.

        Args:
            base_url: Base URL of the Supabase project
            api_key: Project key sent as ``apikey``
            timeout: Request timeout in seconds
            client: Preconfigured HTTP client (tests, shared pools)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def get_user(self, token: str) -> Optional[Dict[str, Any]]:
        """Resolve the user behind an access token.

        Args:
            token: Bearer credential, without the ``Bearer`` prefix

        Returns:
            User record or None when the credential is rejected
        """
        try:
            url = f"{self.base_url}/auth/v1/user"
            headers = {"apikey": self.api_key, "Authorization": f"Bearer {token}"}
            response = await self.client.get(url, headers=headers)

            if response.status_code == 200:
                data = response.json()
                if isinstance(data, dict) and data.get("id"):
                    return data
                logger.warning("Identity service returned no user")
                return None

            logger.warning(f"Credential rejected by identity service: status={response.status_code}")
            return None

        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error verifying credential with identity service: {e}")
            return None
