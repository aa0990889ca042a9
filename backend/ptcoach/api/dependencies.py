# backend/ptcoach/api/dependencies.py
import math
from typing import Dict, Any
from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordBearer
from fastapi_limiter.depends import RateLimiter
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.core.config import settings
from ptcoach.core.enums import UserRole
from ptcoach.db.models import User
from ptcoach.db.session import get_db
from ptcoach.repositories.user import UserRepository


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

credentials_exception = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Yetkisiz erişim",
    headers={"WWW-Authenticate": "Bearer"},
)

RATE_LIMIT_WINDOW_MINUTES = 15


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        ip = forwarded_for.split(',')[0].strip()
        if ip:
            return ip
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "127.0.0.1"


async def get_request_identifier(request: Request) -> str:
    return f"{get_client_ip(request)}:{request.scope['path']}"


async def rate_limit_exceeded_callback(request: Request, response: Response, pexpire: int):
    """Ответ 429 в формате, который ожидает фронтенд."""
    retry_after = max(1, math.ceil(pexpire / 1000))
    limit = getattr(request.state, "rate_limit_times", None)
    headers = {
        "Retry-After": str(retry_after),
        "X-RateLimit-Reset": str(retry_after),
    }
    if limit is not None:
        headers["X-RateLimit-Limit"] = str(limit)
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Çok fazla istek gönderdiniz. Lütfen daha sonra tekrar deneyin.",
        headers=headers,
    )


class LabeledRateLimiter(RateLimiter):
    """RateLimiter, который сообщает свой лимит обработчику превышения."""

    async def __call__(self, request: Request, response: Response):
        request.state.rate_limit_times = self.times
        return await super().__call__(request, response)


register_limiter = LabeledRateLimiter(
    times=5, minutes=RATE_LIMIT_WINDOW_MINUTES,
    identifier=get_request_identifier, callback=rate_limit_exceeded_callback,
)
login_limiter = LabeledRateLimiter(
    times=10, minutes=RATE_LIMIT_WINDOW_MINUTES,
    identifier=get_request_identifier, callback=rate_limit_exceeded_callback,
)
payment_limiter = LabeledRateLimiter(
    times=100, minutes=RATE_LIMIT_WINDOW_MINUTES,
    identifier=get_request_identifier, callback=rate_limit_exceeded_callback,
)


async def get_token_payload(token: str = Depends(oauth2_scheme)) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except (JWTError, ValidationError):
        raise credentials_exception


async def get_current_user(
    payload: Dict[str, Any] = Depends(get_token_payload),
    db: AsyncSession = Depends(get_db)
) -> User:
    user_id_str: str | None = payload.get("sub")
    if user_id_str is None:
        raise credentials_exception
    try:
        user_id = int(user_id_str)
    except ValueError:
        raise credentials_exception

    user = await UserRepository(db).get(User, user_id)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Hesabınız pasif durumda")
    return user


async def get_current_trainer_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role not in (UserRole.TRAINER, UserRole.ADMIN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Yetkisiz erişim")
    return current_user


async def get_current_admin_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Yetkisiz erişim")
    return current_user
