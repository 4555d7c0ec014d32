"""
Pydantic schemas for account registration, login, magic links and password reset.

Registration fields are plain strings: the account layer validates them
itself so every problem is reported at once.
"""

from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional


class RegisterRequest(BaseModel):
    """Request schema for account registration."""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    password: str = ""
    cpf: str = ""
    phone: str = ""
    address: str = ""
    address2: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""
    birthdate: str = Field("", description="YYYY-MM-DD")
    company: str = ""


class RegisterResponse(BaseModel):
    message: str
    user_id: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class EmailRequest(BaseModel):
    """Body carrying only an email address (magic-link verify/resend, reset query)."""
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    new_password: str


class MessageResponse(BaseModel):
    message: str


class VerifyResponse(BaseModel):
    status: str
    token: Optional[str] = None
    token_type: Optional[str] = None


class DeviceResponse(BaseModel):
    """A known device, without its challenge state."""
    device: str
    device_id: str
    ip_address: str
    verified: bool


class DeviceListResponse(BaseModel):
    devices: List[DeviceResponse]


class NavbarResponse(BaseModel):
    email: str
    first_name: str
    last_name: str
    avatar: str


class AdminCheckResponse(BaseModel):
    message: str
    user_id: str
    checked_at: datetime
