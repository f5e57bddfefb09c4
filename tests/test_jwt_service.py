"""Tests for credential verification."""

from datetime import timedelta

import httpx
import pytest

from conftest import TEST_JWT_SECRET, make_token
from reporting_gateway.clients.auth_client import AuthClient
from reporting_gateway.services.identity_service import (
    IdentityVerifier,
    VerifiedUser,
    parse_bearer_token,
)
from reporting_gateway.services.jwt_service import JWTService, extract_role_claim


@pytest.fixture
def jwt_service():
    """Create JWT service instance."""
    return JWTService(TEST_JWT_SECRET)


def test_validate_valid_token(jwt_service):
    """Test validation of valid JWT token."""
    result = jwt_service.validate_token(make_token("user-123", role="admin"))

    assert result is not None
    assert jwt_service.get_user_id(result) == "user-123"
    assert jwt_service.get_role_claim(result) == "admin"


def test_validate_expired_token(jwt_service):
    """Test validation of expired JWT token."""
    token = make_token("user-123", expires_in=timedelta(hours=-1))
    assert jwt_service.validate_token(token) is None


def test_validate_wrong_signature(jwt_service):
    token = make_token("user-123", secret="another-secret-entirely")
    assert jwt_service.validate_token(token) is None


def test_validate_invalid_token(jwt_service):
    """Test validation of invalid JWT token."""
    assert jwt_service.validate_token("invalid.token.here") is None


def test_database_role_claim_ignored(jwt_service):
    """Test that the top-level role (database role) is not an app role."""
    payload = {"sub": "u", "role": "authenticated"}
    assert jwt_service.get_role_claim(payload) is None


def test_extract_role_claim_prefers_user_metadata():
    record = {"user_metadata": {"role": "cashier"}, "app_metadata": {"role": "admin"}}
    assert extract_role_claim(record) == "cashier"

    record = {"user_metadata": {}, "app_metadata": {"role": "admin"}}
    assert extract_role_claim(record) == "admin"

    assert extract_role_claim({}) is None


@pytest.mark.parametrize(
    "header,expected",
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer abc", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
        ("Bearer a b", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_bearer_token(header, expected):
    assert parse_bearer_token(header) == expected


@pytest.mark.asyncio
async def test_local_verification():
    verifier = IdentityVerifier(jwt_service=JWTService(TEST_JWT_SECRET))

    assert await verifier.verify(make_token("u-1", role="admin")) == VerifiedUser("u-1", "admin")
    assert await verifier.verify("garbage") is None


def _auth_client(handler) -> AuthClient:
    return AuthClient(
        "http://supabase.test",
        "anon-key",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
async def test_remote_verification():
    """Test verification against the identity service."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["apikey"] = request.headers["apikey"]
        return httpx.Response(
            200, json={"id": "u-42", "app_metadata": {"role": "administrator"}, "user_metadata": {}}
        )

    auth_client = _auth_client(handler)
    verifier = IdentityVerifier(auth_client=auth_client)

    verified = await verifier.verify("opaque-token")
    await auth_client.close()

    assert verified == VerifiedUser("u-42", "administrator")
    assert seen == {
        "url": "http://supabase.test/auth/v1/user",
        "auth": "Bearer opaque-token",
        "apikey": "anon-key",
    }


@pytest.mark.asyncio
async def test_remote_verification_rejected():
    auth_client = _auth_client(lambda request: httpx.Response(401, json={"msg": "invalid JWT"}))
    verifier = IdentityVerifier(auth_client=auth_client)

    assert await verifier.verify("expired-token") is None
    await auth_client.close()


@pytest.mark.asyncio
async def test_remote_verification_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    auth_client = _auth_client(handler)
    verifier = IdentityVerifier(auth_client=auth_client)

    assert await verifier.verify("token") is None
    await auth_client.close()


def test_verifier_requires_backend():
    with pytest.raises(ValueError):
        IdentityVerifier()
