"""
FastAPI dependencies for authentication and the per-request session context.

This module provides dependency functions that route handlers use to:
- Extract and validate the signed-in account from a JWT bearer token
- Build the request-scoped SessionContext (store + bootstrapped profile)
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

import schemas
from context import SessionContext
from database import get_db
from models import Account
from auth.security import verify_token
from services.profiles import ProfileCache, bootstrap_profile
from store import DocumentStore

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme for JWT authentication
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Account:
    """
    Extract and validate the signed-in account from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing, invalid, or its account is gone
    """
    logger.debug("Attempting to authenticate request")

    if credentials is None or not credentials.credentials:
        logger.info("No bearer token supplied")
        raise _unauthorized("Not authenticated")

    payload = verify_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    if payload.get("type") != "access":
        logger.info(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("Invalid token type. Use access token for API requests.")

    uid = payload.get("sub")
    if not uid:
        logger.info("Token payload missing 'sub' claim")
        raise _unauthorized("Invalid token payload")

    account = db.query(Account).filter(Account.uid == uid).first()
    if account is None:
        logger.info(f"Account not found for uid: {uid}")
        raise _unauthorized("Account not found")

    logger.debug(f"Authenticated account {uid}")
    return account


def identity_for(account: Account) -> schemas.Identity:
    return schemas.Identity(uid=account.uid, email=account.email, display_name=account.display_name)


async def get_current_identity(account: Account = Depends(get_current_account)) -> schemas.Identity:
    return identity_for(account)


def get_store(db: Session = Depends(get_db)) -> DocumentStore:
    return DocumentStore(db)


def get_profile_cache(request: Request) -> ProfileCache:
    return request.app.state.profile_cache


def get_session_context(
    identity: schemas.Identity = Depends(get_current_identity),
    store: DocumentStore = Depends(get_store),
) -> SessionContext:
    """
    Build the SessionContext for the signed-in identity.

    The profile is bootstrapped on demand; a ProfileCreationError stops the
    request before any manager operation runs.
    """
    profile = bootstrap_profile(store, identity)
    return SessionContext(store=store, profile=profile)
