"""
Authentication dependencies.

``Authenticator`` is the per-request gate: extract the bearer token, verify
it, reject blacklisted tokens, then load the user. Every failure is an
``AuthError`` whose reason differs but whose response does not.
"""
from typing import Any, Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from mekcook.core.blacklist import TokenBlacklist
from mekcook.core.exceptions import AuthError, AuthFailure
from mekcook.core.security import TokenCodec
from mekcook.db.session import get_db
from mekcook.models import User
from mekcook.schemas.auth import UserResponse

BEARER_PREFIX = "bearer "


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the bearer token out of an Authorization header.

    The header may hold several ``;``-separated credentials; the first
    ``Bearer`` chunk wins (scheme is case-insensitive).
    """
    if not authorization:
        raise AuthError(AuthFailure.MISSING_CREDENTIAL)

    for chunk in authorization.split(";"):
        chunk = chunk.strip()
        if chunk.lower().startswith(BEARER_PREFIX):
            token = chunk[len(BEARER_PREFIX):].strip()
            if token:
                return token
            break

    raise AuthError(AuthFailure.MISSING_CREDENTIAL)


class Authenticator:
    """Composes token verification, blacklist lookup and user loading."""

    def __init__(
        self,
        codec: TokenCodec,
        blacklist: TokenBlacklist,
        find_user: Callable[[str], Optional[Any]],
    ):
        self.codec = codec
        self.blacklist = blacklist
        self.find_user = find_user

    def authenticate(self, request: Request) -> UserResponse:
        """
        Authenticate ``request`` and attach the principal to ``request.state``.

        Sets ``request.state.user`` (no password fields) and
        ``request.state.token`` (the raw token, needed for logout).
        """
        token = extract_bearer_token(request.headers.get("Authorization"))

        claims = self.codec.verify(token)

        if self.blacklist.contains(self.codec.fingerprint(token)):
            raise AuthError(AuthFailure.REVOKED_TOKEN)

        subject = claims.get("sub")
        if not subject or not isinstance(subject, str):
            raise AuthError(AuthFailure.MISSING_SUBJECT)

        user = self.find_user(subject)
        if user is None:
            raise AuthError(AuthFailure.USER_NOT_FOUND, context={"user_id": subject})

        principal = UserResponse.model_validate(user)
        request.state.user = principal
        request.state.token = token
        return principal


def get_token_codec(request: Request) -> TokenCodec:
    """The codec built at startup (see ``mekcook.main.lifespan``)."""
    return request.app.state.token_codec


def get_token_blacklist(codec: TokenCodec = Depends(get_token_codec)) -> TokenBlacklist:
    """The blacklist the active codec revokes into."""
    return codec.blacklist


def get_authenticator(
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
    blacklist: TokenBlacklist = Depends(get_token_blacklist),
) -> Authenticator:
    return Authenticator(codec, blacklist, lambda user_id: db.get(User, user_id))


def get_current_user(
    request: Request,
    authenticator: Authenticator = Depends(get_authenticator),
) -> UserResponse:
    """Dependency that returns the authenticated user or raises a 401."""
    return authenticator.authenticate(request)


def get_current_token(
    request: Request,
    current_user: UserResponse = Depends(get_current_user),
) -> str:
    """The raw bearer token of an authenticated request."""
    return request.state.token
