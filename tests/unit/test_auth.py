from __future__ import annotations

import time

import jwt
import pytest

from teamchat.api import deps
from teamchat.config import settings
from teamchat.infrastructure.auth.claims import principal_from_claims
from teamchat.infrastructure.auth.hs256_verifier import HS256Verifier

SECRET = "unit-test-secret-that-is-32-bytes!"


def _token(**claims) -> str:
    return jwt.encode(claims, SECRET, algorithm="HS256")


@pytest.mark.asyncio
async def test_hs256_token_maps_to_principal():
    verifier = HS256Verifier(SECRET)
    principal = await verifier.verify(_token(sub="42", name="Alice", roles=["admin"], email="a@x.io"))

    assert principal.user_id == 42
    assert principal.display_name == "Alice"
    assert principal.roles == ["admin"]
    assert principal.email == "a@x.io"


@pytest.mark.asyncio
async def test_wrong_secret_rejected():
    token = jwt.encode({"sub": "42"}, "some-other-secret-of-32-bytes!!!!", algorithm="HS256")
    with pytest.raises(jwt.InvalidSignatureError):
        await HS256Verifier(SECRET).verify(token)


@pytest.mark.asyncio
async def test_missing_sub_rejected():
    with pytest.raises(jwt.MissingRequiredClaimError):
        await HS256Verifier(SECRET).verify(_token(name="nobody"))


@pytest.mark.asyncio
async def test_non_numeric_sub_rejected():
    with pytest.raises(ValueError):
        await HS256Verifier(SECRET).verify(_token(sub="alice"))


@pytest.mark.asyncio
async def test_leeway_tolerates_small_clock_skew():
    token = _token(sub="7", exp=int(time.time()) - 5)

    with pytest.raises(jwt.ExpiredSignatureError):
        await HS256Verifier(SECRET).verify(token)
    assert (await HS256Verifier(SECRET, leeway=30).verify(token)).user_id == 7


def test_single_role_claim_becomes_list():
    assert principal_from_claims({"sub": "1", "roles": "moderator"}).roles == ["moderator"]
    assert principal_from_claims({"sub": "1"}).roles == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"JWT_VERIFY_MODE": "hs256", "JWT_SECRET": ""},
        {"JWT_VERIFY_MODE": "jwks", "JWKS_URL": None},
    ],
)
def test_missing_verifier_config_fails_loudly(monkeypatch, overrides):
    for name, value in overrides.items():
        monkeypatch.setattr(settings, name, value)
    with pytest.raises(RuntimeError):
        deps._get_verifier()
