"""
Verification of bearer tokens issued by the hosted identity provider.
"""

from typing import Optional

import jwt
from jwt import PyJWKClient

from readtube.models.schemas import Identity
from readtube.utils.error_handling import ServiceNotConfigured, UnauthorizedError
from readtube.utils.logger import logging


class IdentityVerifier:
    """
    Check a JWT and return the caller's identity.

    With a JWKS URL, RS256 tokens are verified against the provider's
    published keys. With a shared secret, HS256 tokens are verified locally.
    """

    def __init__(
        self,
        jwks_url: Optional[str] = None,
        secret: Optional[str] = None,
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
    ):
        self.secret = secret
        self.issuer = issuer
        self.audience = audience
        self.jwks_client = PyJWKClient(jwks_url) if jwks_url else None

    @property
    def enabled(self) -> bool:
        return self.jwks_client is not None or bool(self.secret)

    def verify(self, token: str) -> Identity:
        if not self.enabled:
            raise ServiceNotConfigured("Sign-in is not configured on this server.")
        if not token:
            raise UnauthorizedError("Missing bearer token.")

        options = {"require": ["sub", "exp"], "verify_aud": self.audience is not None}
        try:
            if self.jwks_client is not None:
                key = self.jwks_client.get_signing_key_from_jwt(token).key
                algorithms = ["RS256"]
            else:
                key = self.secret
                algorithms = ["HS256"]
            claims = jwt.decode(
                token,
                key,
                algorithms=algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options=options,
            )
        except jwt.PyJWTError as e:
            logging.info(f"Rejected bearer token: {type(e).__name__}")
            raise UnauthorizedError("Invalid or expired token.")

        return Identity(
            subject=claims["sub"],
            email=claims.get("email"),
            name=claims.get("name"),
        )
