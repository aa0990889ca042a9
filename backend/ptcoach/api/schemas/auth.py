# backend/ptcoach/api/schemas/auth.py
from pydantic import BaseModel, EmailStr, Field, ConfigDict

from ptcoach.core.enums import UserRole


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=32)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRead(BaseModel):
    id: int
    email: str
    role: UserRole
    first_name: str | None = None
    last_name: str | None = None
    email_verified: bool
    model_config = ConfigDict(from_attributes=True)


class RegisterResponse(BaseModel):
    user: UserRead
    verification_email_sent: bool


class MessageResponse(BaseModel):
    message: str
