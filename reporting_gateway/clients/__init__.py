"""HTTP clients for the identity and data services."""

from reporting_gateway.clients.auth_client import AuthClient
from reporting_gateway.clients.service_client import DataStoreClient, DataStoreError

__all__ = ["AuthClient", "DataStoreClient", "DataStoreError"]
