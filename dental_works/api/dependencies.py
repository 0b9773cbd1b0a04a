"""FastAPI auth dependencies: bearer session token."""

from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dental_works.core.auth import decode_token
from dental_works.core.database import get_db
from dental_works.core.models import User
from dental_works.core.repository import UserRepository

BEARER_PREFIX = "Bearer "


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the signed-in user from ``Authorization: Bearer <token>``."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith(BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="Not authenticated")

    claims = decode_token(auth_header[len(BEARER_PREFIX):].strip())
    if not claims or not claims.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    try:
        user_id = uuid.UUID(claims["sub"])
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    user = await UserRepository(db).get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"
