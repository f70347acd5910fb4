import hmac
from dataclasses import dataclass
from uuid import UUID

import jwt
from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import UnauthorizedError
from app.core.security import decode_token
from app.db.postgres import get_db
from app.models.user import User


@dataclass
class Caller:
    """Identity behind a report trigger request."""

    user: User | None = None  # None for the scheduler
    is_cron: bool = False

    @property
    def email(self) -> str | None:
        return self.user.email.lower() if self.user else None


def _bearer(authorization: str | None) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Invalid authorization header")
    return authorization[7:]


def verify_cron_secret(authorization: str | None) -> Caller:
    token = _bearer(authorization)
    if not settings.cron_secret or not hmac.compare_digest(token, settings.cron_secret):
        raise UnauthorizedError("Invalid cron secret")
    return Caller(is_cron=True)


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    authorization: str | None = Header(None, description="Bearer <token>"),
) -> User:
    token = _bearer(authorization)
    try:
        payload = decode_token(token)
    except jwt.PyJWTError:
        raise UnauthorizedError("Invalid or expired token")

    if payload.get("type") != "access":
        raise UnauthorizedError("Invalid token type")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token payload")

    result = await db.execute(select(User).where(User.id == UUID(user_id), User.is_active == True))  # noqa: E712
    user = result.scalar_one_or_none()
    if not user:
        raise UnauthorizedError("User not found or inactive")

    return user
