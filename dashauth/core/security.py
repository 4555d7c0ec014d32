"""
Password hashing and session tokens.

Passwords are hashed with bcrypt (passlib CryptContext, fixed cost factor).
Session tokens are HS256-signed JWTs carrying the user id, the device id and,
for administrators only, an admin claim. Verification returns None on any
failure; the dependency layer turns that into a 401.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes; longer input is rejected, not truncated
BCRYPT_MAX_BYTES = 72


class CredentialHasher:
    """One-way password hashing with a randomly salted bcrypt digest."""

    def __init__(self, rounds: int = 12):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)
        self._dummy_digest: Optional[str] = None

    def hash(self, password: str) -> str:
        """
        Hash a password.

        Returns "" when hashing fails (e.g. password longer than 72 bytes).
        An empty digest never verifies.
        """
        try:
            if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
                raise ValueError(f"password exceeds {BCRYPT_MAX_BYTES} bytes")
            return self.pwd_context.hash(password)
        except (ValueError, TypeError) as e:
            logger.error(f"Password hashing failed: {e}")
            return ""

    def verify(self, password: str, digest: str) -> bool:
        """Verify a plain password against a digest (constant-time inside bcrypt)."""
        if not digest:
            return False
        try:
            return self.pwd_context.verify(password, digest)
        except (ValueError, TypeError):
            return False

    def dummy_verify(self, password: str) -> None:
        """
        Spend the same bcrypt work as a real check when the account does not exist,
        so response time does not reveal which emails are registered.
        """
        if self._dummy_digest is None:
            self._dummy_digest = self.hash("timing-equalization-dummy")
        self.verify(password, self._dummy_digest)


class SessionClaims(BaseModel):
    """Typed bearer-token claims. Unknown or malformed claims are rejected."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    device_id: str = Field(alias="deviceId", min_length=1)
    exp: int
    admin: Optional[bool] = None

    @property
    def is_admin(self) -> bool:
        return self.admin is True


class SessionTokenIssuer:
    """Signs and verifies session tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_days: int = 7,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        if not algorithm.startswith("HS"):
            raise ValueError("session tokens must use an HMAC algorithm")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_days = expire_days
        self.clock = clock

    def issue(self, user_id: str, device_id: str, is_admin: bool = False) -> str:
        """
        Create a signed session token.

        Args:
            user_id: Account UUID
            device_id: Device identifier the session is bound to
            is_admin: Adds the admin claim; it still needs a directory lookup to be honoured

        Returns:
            Encoded JWT as a string
        """
        expire = self.clock() + timedelta(days=self.expire_days)
        claims = {
            "userId": str(user_id),
            "deviceId": str(device_id),
            "exp": int(expire.timestamp()),
        }
        if is_admin:
            claims["admin"] = True
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> Optional[SessionClaims]:
        """
        Decode and validate a session token.

        Rejects non-HMAC algorithms, bad signatures, expired tokens and claim
        sets that do not match SessionClaims. Returns None on any failure.
        """
        try:
            header = jwt.get_unverified_header(token)
            if not str(header.get("alg", "")).startswith("HS"):
                logger.warning(f"Rejected session token signed with {header.get('alg')!r}")
                return None
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require_exp": True},
            )
            claims = SessionClaims.model_validate(payload)
        except JWTError as e:
            logger.info(f"Session token rejected: {e}")
            return None
        except ValidationError as e:
            logger.warning(f"Session token has malformed claims: {e.error_count()} error(s)")
            return None

        # jose checks exp against the wall clock; check it against ours as well
        if claims.exp <= int(self.clock().timestamp()):
            return None
        return claims
