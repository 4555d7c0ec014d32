"""
Bearer-protected dashboard endpoints.
"""

import hashlib
import logging
from datetime import datetime, timezone
from uuid import UUID
from fastapi import APIRouter, Depends

from dashauth.core.deps import get_account_directory, get_admin_claims, get_current_claims
from dashauth.core.directory import AccountDirectory
from dashauth.core.security import SessionClaims
from dashauth.schemas.account import (
    AdminCheckResponse,
    DeviceListResponse,
    DeviceResponse,
    NavbarResponse,
)

router = APIRouter(tags=["Dashboard"])
logger = logging.getLogger(__name__)

GRAVATAR_URL = "https://gravatar.com/avatar/"


@router.get("/dashboard/navbar", response_model=NavbarResponse)
def navbar(
    claims: SessionClaims = Depends(get_current_claims),
    directory: AccountDirectory = Depends(get_account_directory),
):
    """Name, email and avatar for the dashboard header."""
    profile = directory.get_profile(UUID(claims.user_id))
    avatar = hashlib.sha256(profile.email.encode("utf-8")).hexdigest()

    return NavbarResponse(
        email=profile.email,
        first_name=profile.first_name,
        last_name=profile.last_name,
        avatar=GRAVATAR_URL + avatar,
    )


@router.get("/account/devices", response_model=DeviceListResponse)
def list_devices(
    claims: SessionClaims = Depends(get_current_claims),
    directory: AccountDirectory = Depends(get_account_directory),
):
    """Devices known for the current account."""
    devices = directory.list_devices(UUID(claims.user_id))
    return DeviceListResponse(devices=[
        DeviceResponse(
            device=d.device,
            device_id=d.device_id,
            ip_address=d.ip_address,
            verified=d.challenge_verified,
        )
        for d in devices
    ])


@router.post("/account/auth", response_model=AdminCheckResponse)
def admin_check(claims: SessionClaims = Depends(get_admin_claims)):
    """Role-gated check: reachable only with an admin token for a current administrator."""
    logger.info(f"Admin access granted to {claims.user_id}")
    return AdminCheckResponse(
        message="Access granted, administrator",
        user_id=claims.user_id,
        checked_at=datetime.now(timezone.utc),
    )
