"""
Security utilities for password hashing and JWT token handling.
"""
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Callable
import hashlib
import logging
import math
import time
import uuid

import bcrypt
from jose import jwt, JWTError
from jose.constants import ALGORITHMS

from mekcook.core.blacklist import TokenBlacklist
from mekcook.core.config import Settings, get_settings
from mekcook.core.exceptions import AuthError, AuthFailure, ConfigurationError

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    """
    Hash a JWT token for storage in blacklist.

    We hash tokens before storing them so that if the blacklist file leaks,
    the attacker can't use the blacklisted tokens.
    """
    return hashlib.sha256(token.encode()).hexdigest()


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    rounds = get_settings().BCRYPT_ROUNDS
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds)).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


class TokenCodec:
    """
    Issues and verifies signed session tokens.

    Claims: ``sub`` (user id), ``iss``, ``aud`` (= ``sub``), ``iat``, ``exp``, ``jti``.
    Issuing and verifying are stateless; only ``revoke`` touches the
    blacklist the codec is bound to.
    """

    def __init__(
        self,
        secret: str | None,
        blacklist: TokenBlacklist,
        algorithm: str = ALGORITHMS.HS256,
        issuer: str = "MekCook",
        ttl: timedelta = timedelta(days=30),
        clock: Callable[[], float] = time.time,
    ):
        if not isinstance(secret, str) or not secret.strip():
            raise ConfigurationError(
                "JWT_SECRET_KEY environment variable is not set",
                code="MISSING_JWT_SECRET",
            )
        if algorithm not in ALGORITHMS.HMAC:
            raise ConfigurationError(
                f"Unsupported JWT algorithm {algorithm!r}; expected one of {sorted(ALGORITHMS.HMAC)}",
                context={"algorithm": algorithm},
            )
        if ttl.total_seconds() <= 0:
            raise ConfigurationError("Token lifetime must be positive", context={"ttl": str(ttl)})

        self._secret = secret
        self.blacklist = blacklist
        self.algorithm = algorithm
        self.issuer = issuer
        self.ttl = ttl
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, blacklist: TokenBlacklist) -> "TokenCodec":
        return cls(
            secret=settings.JWT_SECRET_KEY,
            blacklist=blacklist,
            algorithm=settings.JWT_ALGORITHM,
            issuer=settings.JWT_ISSUER,
            ttl=settings.access_token_ttl,
        )

    @staticmethod
    def fingerprint(token: str) -> str:
        """Blacklist key for a token. One-way; never reversible to the token."""
        return hash_token(token)

    def issue(self, subject: str) -> str:
        """
        Create a signed token for ``subject`` valid for ``self.ttl``.

        Each token carries a random ``jti`` so two sessions opened in the
        same second still get distinct tokens (and distinct fingerprints).
        """
        if not subject:
            raise ValueError("Token subject must be a non-empty string")

        issued_at = int(self._clock())
        claims = {
            "sub": str(subject),
            "iss": self.issuer,
            "aud": str(subject),
            "iat": issued_at,
            "exp": issued_at + int(self.ttl.total_seconds()),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        """
        Check signature, algorithm, issuer, audience and expiry.

        Raises:
            AuthError: with reason INVALID_TOKEN or EXPIRED_TOKEN. Both render
                as the same 401 response.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                # aud is per-subject and exp is checked below against our clock.
                # No require_exp: jose turns any require_X back into verify_X.
                options={"verify_aud": False, "verify_exp": False},
            )
        except JWTError as e:
            raise AuthError(AuthFailure.INVALID_TOKEN, context={"error": str(e)}) from e

        if not isinstance(claims, Mapping):
            raise AuthError(AuthFailure.INVALID_TOKEN, context={"error": "payload is not a claim set"})

        if claims.get("aud") != claims.get("sub"):
            raise AuthError(AuthFailure.INVALID_TOKEN, context={"error": "audience does not match subject"})

        expires_at = claims.get("exp")
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            raise AuthError(AuthFailure.INVALID_TOKEN, context={"error": "exp must be a number"})
        if expires_at < self._clock():
            raise AuthError(AuthFailure.EXPIRED_TOKEN, context={"exp": expires_at})

        return dict(claims)

    def revoke(self, token: str) -> None:
        """
        Blacklist a token until its own expiry.

        The signature is not checked: a token being revoked may already be
        rejected elsewhere, but it must still be a decodable JWT with an
        ``exp`` claim.
        """
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError as e:
            raise AuthError(AuthFailure.INVALID_TOKEN, context={"error": str(e)}) from e

        expires_at = claims.get("exp")
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            raise AuthError(AuthFailure.INVALID_TOKEN, context={"error": "token has no expiration"})

        self.blacklist.record(self.fingerprint(token), math.ceil(expires_at))
        logger.info(f"Revoked token for subject {claims.get('sub')}")
