"""Auth routes: sign up and log in with email and password."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dental_works.api.dependencies import client_ip
from dental_works.core.auth import create_access_token, hash_password, verify_password
from dental_works.core.database import get_db
from dental_works.core.repository import AuditRepository, UserRepository
from dental_works.core.schemas import Credentials, TokenResponse, UserRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


def _token_response(user) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(str(user.id), user.email),
        user=UserRead.model_validate(user),
    )


@router.post("/signup", response_model=TokenResponse, status_code=201)
async def signup(
    body: Credentials,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    repo = UserRepository(db)
    if await repo.get_by_email(body.email):
        raise HTTPException(status_code=409, detail="Email already registered")

    user = await repo.create(email=body.email, password_hash=hash_password(body.password))
    await AuditRepository(db).log_action(
        action="signup",
        resource_type="user",
        resource_id=str(user.id),
        user_id=str(user.id),
        ip_address=client_ip(request),
    )
    logger.info(f"New user signed up: {user.id}")
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: Credentials,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    user = await UserRepository(db).get_by_email(body.email)
    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _token_response(user)
