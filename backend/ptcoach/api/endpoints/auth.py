# backend/ptcoach/api/endpoints/auth.py
import uuid
import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ptcoach.api.dependencies import login_limiter, register_limiter
from ptcoach.api.schemas.auth import (
    LoginRequest, MessageResponse, RegisterRequest, RegisterResponse,
    TokenResponse, UserRead, VerifyEmailRequest,
)
from ptcoach.core.config import settings
from ptcoach.core.enums import UserRole
from ptcoach.core.security import create_access_token, get_password_hash, verify_password
from ptcoach.db.models import User
from ptcoach.db.session import get_db
from ptcoach.repositories.user import UserRepository
from ptcoach.services.email_templates import verification_email
from ptcoach.services.mail import safe_send

log = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Регистрация клиента",
    dependencies=[Depends(register_limiter)]
)
async def register(request_data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    user_repo = UserRepository(db)
    email = request_data.email.strip().lower()
    if await user_repo.get_by_email(email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bu email adresi zaten kullanılıyor")

    # Самостоятельная регистрация всегда создает клиента
    user = User(
        email=email,
        hashed_password=get_password_hash(request_data.password),
        role=UserRole.CLIENT,
        email_verified=False,
        email_verification_token=str(uuid.uuid4()),
        first_name=request_data.first_name.strip(),
        last_name=request_data.last_name.strip(),
        phone=(request_data.phone or "").strip() or None,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    log.info("auth.registered", user_id=user.id)

    verification_url = f"{settings.app_base_url}/api/v1/auth/verify-email?token={user.email_verification_token}"
    sent = await safe_send(
        db, user.email, verification_email(user.full_name, verification_url),
        label="E-posta doğrulama", source="auth", actor=user,
        context={"user_id": user.id},
    )
    return RegisterResponse(user=UserRead.model_validate(user), verification_email_sent=sent)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Вход по email и паролю",
    dependencies=[Depends(login_limiter)]
)
async def login(request_data: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await UserRepository(db).get_by_email(request_data.email)
    if not user or not verify_password(request_data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Email veya şifre hatalı")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Hesabınız pasif durumda")

    access_token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    log.info("auth.logged_in", user_id=user.id)
    return TokenResponse(access_token=access_token)


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(request_data: VerifyEmailRequest, db: AsyncSession = Depends(get_db)):
    user = await UserRepository(db).get_by_verification_token(request_data.token)
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Geçersiz veya süresi dolmuş token")

    user.email_verified = True
    user.email_verification_token = None
    await db.commit()
    log.info("auth.email_verified", user_id=user.id)
    return MessageResponse(message="Email başarıyla doğrulandı")
