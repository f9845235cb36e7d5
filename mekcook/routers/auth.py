"""
Authentication router with register, login, check, and logout endpoints.
"""
import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mekcook.core.deps import get_current_token, get_current_user, get_token_codec
from mekcook.core.exceptions import BadRequestException
from mekcook.core.http import envelope
from mekcook.core.security import TokenCodec, hash_password, verify_password
from mekcook.db.session import get_db
from mekcook.models import User
from mekcook.schemas.auth import (
    AuthResponse,
    CheckResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
):
    """
    Register a new user account.
    Returns the user and a session token on success.
    """
    # Check if email already exists
    existing_user = db.query(User).filter(User.email == user_data.email).first()
    if existing_user:
        raise BadRequestException("User already exists with this email.")

    # Create new user
    new_user = User(
        name=user_data.name,
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
    )
    db.add(new_user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise BadRequestException("User already exists with this email.")
    db.refresh(new_user)

    token = codec.issue(new_user.id)
    logger.info(f"Registered user {new_user.id}")

    return envelope(
        status.HTTP_201_CREATED,
        user=UserResponse.model_validate(new_user),
        token=token,
    )


@router.post("/login", response_model=AuthResponse)
def login(
    user_data: UserLogin,
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
):
    """
    Authenticate user and return a session token.
    """
    # Find user by email
    user = db.query(User).filter(User.email == user_data.email).first()
    if not user:
        raise BadRequestException("Invalid email.", code="INVALID_EMAIL")

    # Verify password
    if not verify_password(user_data.password, user.hashed_password):
        raise BadRequestException("Password is incorrect.", code="INVALID_PASSWORD")

    token = codec.issue(user.id)

    return envelope(user=UserResponse.model_validate(user), token=token)


@router.get("/check", response_model=CheckResponse)
def check(current_user: UserResponse = Depends(get_current_user)):
    """
    Get the current authenticated user's profile.
    """
    return envelope(user=current_user)


@router.delete("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    token: str = Depends(get_current_token),
    codec: TokenCodec = Depends(get_token_codec),
) -> Response:
    """
    Logout user by blacklisting the presented token until it expires.
    Any later request with the same token is rejected.
    """
    codec.revoke(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
