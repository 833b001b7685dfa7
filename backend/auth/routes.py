"""
Authentication API endpoints.

This module provides REST API endpoints for:
- Sign-up (account + profile)
- Sign-in / sign-out, which notify the session manager of identity changes
- The current identity
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.orm import Session

import repository
import schemas
from database import get_db
from errors import ProfileCreationError, RemoteOperationError
from models import Account
from auth.security import (
    MIN_PASSWORD_LENGTH,
    create_access_token,
    hash_password,
    verify_password,
)
from auth.dependencies import (
    get_current_identity,
    get_profile_cache,
    get_store,
    identity_for,
)
from services.profiles import ProfileCache, on_identity_changed
from store import DocumentStore, new_document_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# Request/Response schemas
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=100)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        return schemas.normalize_display_name(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    profile: schemas.User


def _start_session(account: Account, store: DocumentStore, cache: ProfileCache) -> SessionResponse:
    profile = on_identity_changed(store, cache, identity_for(account))
    token = create_access_token({"sub": account.uid, "email": account.email})
    return SessionResponse(access_token=token, profile=profile)


@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
    cache: ProfileCache = Depends(get_profile_cache),
):
    """
    Register a new account and create its profile with the given name.

    Raises:
        HTTPException: 400 if the email is already registered
    """
    logger.info(f"Registration attempt for email: {request.email}")

    existing = db.query(Account).filter(Account.email == request.email).first()
    if existing:
        logger.info(f"Registration failed: email already exists: {request.email}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    account = Account(
        uid=new_document_id(),
        email=request.email,
        password_hash=hash_password(request.password),
        display_name=request.name,
    )
    db.add(account)
    db.commit()
    db.refresh(account)

    try:
        repository.create_user_profile(store, account.uid, request.name, account.email)
    except RemoteOperationError as e:
        raise ProfileCreationError("Could not create user profile") from e

    logger.info(f"Account registered: {account.email} (UID: {account.uid})")
    return _start_session(account, store, cache)


@router.post("/login", response_model=SessionResponse)
def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
    cache: ProfileCache = Depends(get_profile_cache),
):
    """
    Sign in with email and password.

    Raises:
        HTTPException: 401 if the credentials are invalid
    """
    logger.info(f"Login attempt for email: {request.email}")

    account = db.query(Account).filter(Account.email == request.email).first()
    if account is None or not verify_password(request.password, account.password_hash):
        logger.info(f"Login failed for {request.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    logger.info(f"Login successful for {account.email}")
    return _start_session(account, store, cache)


@router.post("/logout")
def logout(
    identity: schemas.Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
    cache: ProfileCache = Depends(get_profile_cache),
):
    """Sign out: the session manager drops this identity's cached profile."""
    on_identity_changed(store, cache, None, signed_out_uid=identity.uid)
    logger.info(f"Signed out: {identity.email}")
    return {"message": "Signed out"}


@router.get("/me", response_model=schemas.Identity)
def me(identity: schemas.Identity = Depends(get_current_identity)):
    return identity
