from typing import Optional

from pydantic import BaseModel, EmailStr

from tasktracker.schemas.user import UserRead


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    first_name: str
    last_name: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str


class AuthPayload(BaseModel):
    user: UserRead
    token: str
    token_type: str = "bearer"
    expires_in: int
