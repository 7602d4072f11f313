"""
Tests for bearer token verification.
"""

import time

import jwt
import pytest

from readtube.core.identity import IdentityVerifier
from readtube.utils.error_handling import ServiceNotConfigured, UnauthorizedError

from conftest import JWT_SECRET


def _token(secret=JWT_SECRET, **claims):
    payload = {"sub": "auth|123", "email": "rick@example.com", "exp": int(time.time()) + 300}
    payload.update(claims)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, secret, algorithm="HS256")


def test_valid_token_returns_identity():
    identity = IdentityVerifier(secret=JWT_SECRET).verify(_token(name="Rick"))

    assert identity.subject == "auth|123"
    assert identity.email == "rick@example.com"
    assert identity.name == "Rick"


def test_expired_token_is_rejected():
    with pytest.raises(UnauthorizedError):
        IdentityVerifier(secret=JWT_SECRET).verify(_token(exp=int(time.time()) - 60))


def test_wrong_secret_is_rejected():
    token = _token(secret="another-secret-that-is-also-long-enough-for-hs256")
    with pytest.raises(UnauthorizedError) as excinfo:
        IdentityVerifier(secret=JWT_SECRET).verify(token)
    assert excinfo.value.status_code == 401


def test_token_without_subject_is_rejected():
    with pytest.raises(UnauthorizedError):
        IdentityVerifier(secret=JWT_SECRET).verify(_token(sub=None))


def test_audience_is_checked():
    verifier = IdentityVerifier(secret=JWT_SECRET, audience="readtube")

    assert verifier.verify(_token(aud="readtube")).subject == "auth|123"
    with pytest.raises(UnauthorizedError):
        verifier.verify(_token(aud="someone-else"))


def test_verifier_without_keys_is_not_configured():
    verifier = IdentityVerifier()
    assert not verifier.enabled
    with pytest.raises(ServiceNotConfigured):
        verifier.verify(_token())
