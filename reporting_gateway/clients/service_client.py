"""HTTP client for the backing data service (PostgREST)."""

import logging
from typing import Any, Dict, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class DataStoreError(Exception):
    """Error reported by the data service itself."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


def split_procedure_name(name: str) -> Tuple[Optional[str], str]:
    """Split ``schema.function`` into its parts; unqualified names have no schema."""
    schema, _, function = name.rpartition(".")
    return (schema or None), function


class DataStoreClient:
    """REST client for the data service: RPC, table reads and inserts."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: float = 30.0,
        lookup_timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize data store client.

        Args:
            base_url: Base URL of the Supabase project
            service_key: Service role key, used both as ``apikey`` and bearer
            timeout: Transport timeout in seconds
            lookup_timeout: Timeout for the per-request role lookup
            client: Preconfigured HTTP client (tests, shared pools)
        """
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.lookup_timeout = lookup_timeout
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    def _headers(self, schema: Optional[str] = None, write: bool = False) -> Dict[str, str]:
        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }
        if schema:
            headers["Content-Profile" if write else "Accept-Profile"] = schema
        return headers

    @staticmethod
    def _raise_for_error(response: httpx.Response):
        if response.status_code < 400:
            return
        message = f"data service returned status {response.status_code}"
        code = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error") or message
            code = body.get("code")
        raise DataStoreError(message, status_code=response.status_code, code=code)

    async def rpc(self, name: str, params: Dict[str, Any]) -> Any:
        """Invoke a stored procedure and return its rows.

        Args:
            name: Procedure name, optionally schema-qualified (``reports.top_products``)
            params: Named procedure arguments

        Returns:
            Decoded JSON result

        Raises:
            DataStoreError: If the data service reports an error
            httpx.HTTPError: On transport failures
        """
        schema, function = split_procedure_name(name)
        url = f"{self.base_url}/rest/v1/rpc/{function}"
        headers = self._headers(schema, write=True)
        if schema:
            headers["Accept-Profile"] = schema

        logger.debug(f"Calling RPC {name}")
        response = await self.client.post(url, json=params, headers=headers)
        self._raise_for_error(response)
        if not response.content:
            return None
        return response.json()

    async def fetch_user_role(self, user_id: str) -> Optional[str]:
        """Read ``users.role`` for one user.

        Returns:
            The role value, or None when the user has no row
        """
        url = f"{self.base_url}/rest/v1/users"
        params = {"select": "role", "id": f"eq.{user_id}", "limit": "1"}
        response = await self.client.get(
            url, params=params, headers=self._headers(), timeout=self.lookup_timeout
        )
        self._raise_for_error(response)
        rows = response.json()
        if not rows:
            return None
        return rows[0].get("role")

    async def insert(self, table: str, row: Dict[str, Any]) -> None:
        """Insert a single row, discarding the representation."""
        url = f"{self.base_url}/rest/v1/{table}"
        headers = self._headers()
        headers["Prefer"] = "return=minimal"
        response = await self.client.post(url, json=row, headers=headers)
        self._raise_for_error(response)
