"""
FastAPI dependencies: component wiring, authentication and authorization.

Components receive their secrets and policy from Settings here, at
construction; none of them reads configuration on its own.
"""

import ipaddress
from datetime import timedelta
from functools import lru_cache
from typing import Optional
from uuid import UUID
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from dashauth.core.config import Settings, get_settings
from dashauth.core.database import get_db
from dashauth.core.devices import DeviceRegistry, device_label_from_agent
from dashauth.core.directory import AccountDirectory
from dashauth.core.encryption import FieldCipher
from dashauth.core.errors import InternalError
from dashauth.core.magic_link import MagicLinkGenerator
from dashauth.core.security import CredentialHasher, SessionClaims, SessionTokenIssuer
from dashauth.core.throttle import AttemptThrottle

# HTTP Bearer token scheme (Authorization: Bearer <token>)
security = HTTPBearer(auto_error=False)

# Width of login_attempts.ip_address
MAX_IP_LENGTH = 45


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_field_cipher(settings: Settings = Depends(get_settings)) -> FieldCipher:
    return FieldCipher(settings.FIELD_ENCRYPTION_KEY)


@lru_cache
def _hasher(rounds: int) -> CredentialHasher:
    return CredentialHasher(rounds=rounds)


def get_credential_hasher(settings: Settings = Depends(get_settings)) -> CredentialHasher:
    return _hasher(settings.BCRYPT_ROUNDS)


def get_token_issuer(settings: Settings = Depends(get_settings)) -> SessionTokenIssuer:
    return SessionTokenIssuer(
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        expire_days=settings.SESSION_TOKEN_EXPIRE_DAYS,
    )


def get_magic_link_generator(settings: Settings = Depends(get_settings)) -> MagicLinkGenerator:
    return MagicLinkGenerator(settings.MAGIC_LINK_KEY, strategy=settings.MAGIC_LINK_STRATEGY)


def get_account_directory(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    cipher: FieldCipher = Depends(get_field_cipher),
    hasher: CredentialHasher = Depends(get_credential_hasher),
    tokens: SessionTokenIssuer = Depends(get_token_issuer),
    magic_links: MagicLinkGenerator = Depends(get_magic_link_generator),
) -> AccountDirectory:
    return AccountDirectory(
        db=db,
        cipher=cipher,
        hasher=hasher,
        tokens=tokens,
        magic_links=magic_links,
        devices=DeviceRegistry(db),
        throttle=AttemptThrottle(
            db,
            max_attempts=settings.MAX_FAILED_ATTEMPTS,
            lockout=timedelta(minutes=settings.LOCKOUT_MINUTES),
        ),
        magic_link_ttl=timedelta(minutes=settings.MAGIC_LINK_TTL_MINUTES),
        password_reset_ttl=timedelta(minutes=settings.PASSWORD_RESET_TTL_MINUTES),
    )


def _parse_ip(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def get_client_ip(request: Request, settings: Settings = Depends(get_settings)) -> str:
    """
    Extract the client's IP address from the request.

    The socket peer is used unless TRUST_FORWARDED_FOR is set, in which case
    the first X-Forwarded-For entry wins when it parses as an IP address.
    """
    peer = request.client.host if request.client else None

    if settings.TRUST_FORWARDED_FOR:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # X-Forwarded-For can contain multiple IPs, take the first (client IP)
            client_ip = _parse_ip(forwarded_for.split(",")[0])
            if client_ip:
                return client_ip[:MAX_IP_LENGTH]

    return (peer or "unknown")[:MAX_IP_LENGTH]


def get_device_label(request: Request) -> str:
    return device_label_from_agent(request.headers.get("User-Agent"))


async def get_current_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    tokens: SessionTokenIssuer = Depends(get_token_issuer),
    directory: AccountDirectory = Depends(get_account_directory),
) -> SessionClaims:
    """
    Validate the bearer token and make sure its user still exists.

    Raises:
        HTTPException 401: missing, invalid or expired token, or unknown user
    """
    if credentials is None:
        raise _credentials_exception()

    claims = tokens.verify(credentials.credentials)
    if claims is None:
        raise _credentials_exception()

    try:
        user_id = UUID(claims.user_id)
    except ValueError:
        raise _credentials_exception()

    try:
        exists = directory.user_exists(user_id)
    except InternalError:
        # Fail closed
        raise _credentials_exception()
    if not exists:
        raise _credentials_exception()

    return claims


async def get_admin_claims(
    claims: SessionClaims = Depends(get_current_claims),
    directory: AccountDirectory = Depends(get_account_directory),
) -> SessionClaims:
    """
    Require the admin claim and a current admin role.

    A token minted before a role change must not keep its privilege, so the
    claim is always confirmed against the directory.

    Raises:
        HTTPException 401: claim missing or role no longer held
    """
    if not claims.is_admin:
        raise _credentials_exception()

    try:
        is_admin = directory.is_admin(UUID(claims.user_id))
    except InternalError:
        raise _credentials_exception()
    if not is_admin:
        raise _credentials_exception()

    return claims
