"""
Account directory: registration, login, magic-link verification and password reset.

Orchestrates the field cipher, credential hasher, device registry, magic-link
generator, attempt throttle and session token issuer over one database
session. Each public operation is one transaction: it commits on success and
rolls back on any failure. Persistence faults surface as InternalError so the
operation fails closed.

Flows:
    register  -> encrypt PII, hash password, store credential + info with the
                 first device entry holding an issued challenge
    login     -> throttle check, password check, fresh challenge for the device
                 (no session token until the challenge is confirmed)
    verify    -> challenge check for the device; verified -> session token,
                 expired -> new challenge ("retry"), mismatch -> Unauthorized
"""

import enum
import hmac
import logging
import secrets
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Mapping, Optional
from uuid import UUID
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from dashauth.core.devices import DeviceEntry, DeviceRegistry, ChallengeStatus, dump_devices, new_device_entry
from dashauth.core.encryption import FieldCipher
from dashauth.core.errors import (
    AccountError,
    DuplicateAccount,
    FieldError,
    InternalError,
    NotFound,
    RateLimited,
    Unauthorized,
    ValidationFailed,
)
from dashauth.core.magic_link import MagicLinkGenerator
from dashauth.core.security import CredentialHasher, SessionTokenIssuer
from dashauth.core.throttle import AttemptThrottle
from dashauth.core.validation import password_problems, validate_registration
from dashauth.crud import account as crud
from dashauth.models.account_info import AccountInfo
from dashauth.models.credential import Credential, ENCRYPTED_FIELDS

logger = logging.getLogger(__name__)

# Encrypted fields that may legitimately be empty
OPTIONAL_FIELDS = frozenset({"address2", "company"})


@dataclass
class RegistrationOutcome:
    user_id: UUID
    email: str
    first_name: str
    magic_token: str


@dataclass
class ChallengeIssued:
    user_id: UUID
    email: str
    first_name: str
    device_id: str
    magic_token: str


class VerifyStatus(str, enum.Enum):
    VERIFIED = "verified"
    RETRY = "retry"


@dataclass
class VerifyOutcome:
    status: VerifyStatus
    session_token: Optional[str] = None
    device_id: Optional[str] = None
    # Set on RETRY: the freshly issued challenge to send out
    challenge: Optional[ChallengeIssued] = None


@dataclass
class PasswordResetIssued:
    email: str
    first_name: str
    token: str


@dataclass
class AccountProfile:
    user_id: UUID
    email: str
    is_admin: bool
    fields: Dict[str, str]

    @property
    def first_name(self) -> str:
        return self.fields["first_name"]

    @property
    def last_name(self) -> str:
        return self.fields["last_name"]


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class AccountDirectory:

    def __init__(
        self,
        db: Session,
        cipher: FieldCipher,
        hasher: CredentialHasher,
        tokens: SessionTokenIssuer,
        magic_links: MagicLinkGenerator,
        devices: DeviceRegistry,
        throttle: AttemptThrottle,
        magic_link_ttl: timedelta = timedelta(minutes=10),
        password_reset_ttl: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.db = db
        self.cipher = cipher
        self.hasher = hasher
        self.tokens = tokens
        self.magic_links = magic_links
        self.devices = devices
        self.throttle = throttle
        self.magic_link_ttl = magic_link_ttl
        self.password_reset_ttl = password_reset_ttl
        self.clock = clock

    @contextmanager
    def _transaction(self, operation: str):
        try:
            yield
            self.db.commit()
        except AccountError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Persistence failure during {operation}: {e.__class__.__name__}")
            raise InternalError(operation) from e

    def _require_allowed(self, ip_address: str, operation: str) -> None:
        if not self.throttle.can_proceed(ip_address):
            logger.warning(f"{operation} refused for {ip_address}: lockout active")
            raise RateLimited(ip_address)

    def _fail_and_commit(self, ip_address: str, email: str, error: AccountError) -> None:
        """Record a failed attempt, keep it, and abort the operation."""
        self.throttle.record_failure(ip_address, email)
        self.db.commit()
        raise error

    def _encrypt(self, value: str) -> str:
        blob = self.cipher.encrypt(value)
        if not blob:
            raise InternalError("field encryption failed")
        return blob

    def _first_name(self, credential: Credential) -> str:
        return self.cipher.decrypt(credential.first_name)

    def _issue_challenge(
        self, credential: Credential, device_label: str, ip_address: str, unpredictable: bool = True
    ) -> ChallengeIssued:
        device_id = self.devices.upsert(credential.id, device_label, ip_address)
        magic_token = self.magic_links.generate(credential.email, unpredictable=unpredictable)
        self.devices.set_challenge(credential.id, device_label, magic_token, self.magic_link_ttl)
        return ChallengeIssued(
            user_id=credential.id,
            email=credential.email,
            first_name=self._first_name(credential),
            device_id=device_id,
            magic_token=magic_token,
        )

    def register(self, profile: Mapping[str, str], device_label: str, ip_address: str) -> RegistrationOutcome:
        """
        Create an account.

        Validates every field (all problems reported together), rejects a
        known email, then stores the encrypted credential and the info row
        with the first device entry in one transaction. The caller sends the
        returned magic token to the user.

        Raises:
            ValidationFailed: invalid fields
            DuplicateAccount: email already registered
            RateLimited: lockout active for ip_address
            InternalError: cipher, hashing or persistence fault
        """
        with self._transaction("register"):
            self._require_allowed(ip_address, "register")

            errors = validate_registration(profile)
            if errors:
                raise ValidationFailed(errors)

            email = normalize_email(profile["email"])
            if crud.credential_exists(self.db, email):
                logger.info(f"Registration refused, email already registered: {email}")
                self._fail_and_commit(ip_address, email, DuplicateAccount())

            digest = self.hasher.hash(profile["password"])
            if not digest:
                raise InternalError("password hashing failed")

            user_id = uuid.uuid4()
            credential = Credential(
                id=user_id,
                email=email,
                password=self._encrypt(digest),
                **{field: self._encrypt((profile.get(field) or "").strip()) for field in ENCRYPTED_FIELDS},
            )

            magic_token = self.magic_links.generate(email, unpredictable=True)
            entry = new_device_entry(device_label, ip_address)
            entry.challenge_id = magic_token
            entry.challenge_expires_at = self.clock() + self.magic_link_ttl

            try:
                crud.put_credential(self.db, credential)
                crud.put_info(self.db, AccountInfo(user_id=user_id, is_admin=False, devices=dump_devices([entry])))
            except IntegrityError:
                # Lost a race with a concurrent registration of the same email
                self.db.rollback()
                logger.info(f"Registration refused, email already registered: {email}")
                self._fail_and_commit(ip_address, email, DuplicateAccount())

        logger.info(f"New account registered: {email} (user_id: {user_id})")
        return RegistrationOutcome(
            user_id=user_id,
            email=email,
            first_name=(profile.get("first_name") or "").strip(),
            magic_token=magic_token,
        )

    def login(self, email: str, password: str, device_label: str, ip_address: str) -> ChallengeIssued:
        """
        Check email and password, then issue a magic-link challenge for the device.

        Session issuance is deferred until the challenge is confirmed with
        verify_magic_link().

        Raises:
            RateLimited: lockout active for ip_address
            NotFound: unknown email
            Unauthorized: wrong password
            InternalError: persistence fault
        """
        email = normalize_email(email)
        with self._transaction("login"):
            self._require_allowed(ip_address, "login")

            credential = crud.get_credential_by_email(self.db, email)
            if credential is None:
                self.hasher.dummy_verify(password)
                logger.info(f"Login failed for unknown email from {ip_address}")
                self._fail_and_commit(ip_address, email, NotFound(email))

            digest = self.cipher.decrypt(credential.password)
            if not self.hasher.verify(password, digest):
                logger.info(f"Login failed for {email} from {ip_address}: bad password")
                self._fail_and_commit(ip_address, email, Unauthorized(email))

            self.throttle.reset(ip_address)
            # Password checked; the configured strategy applies
            issued = self._issue_challenge(credential, device_label, ip_address, unpredictable=False)

        logger.info(f"Login challenge issued for {email}")
        return issued

    def request_magic_link(self, email: str, device_label: str, ip_address: str) -> Optional[ChallengeIssued]:
        """
        Issue a fresh challenge for a (possibly new) device.

        Returns None for an unknown email so callers respond identically
        either way.
        """
        email = normalize_email(email)
        with self._transaction("request_magic_link"):
            self._require_allowed(ip_address, "request_magic_link")

            credential = crud.get_credential_by_email(self.db, email)
            if credential is None:
                logger.info(f"Magic link requested for unknown email from {ip_address}")
                return None

            issued = self._issue_challenge(credential, device_label, ip_address)

        return issued

    def verify_magic_link(self, email: str, device_label: str, candidate: str, ip_address: str) -> VerifyOutcome:
        """
        Redeem a magic-link challenge for the device.

        Returns:
            VERIFIED with a session token bound to the device id, or RETRY
            when the challenge matched but had expired (a new challenge is
            issued and returned for delivery)

        Raises:
            Unauthorized: no matching challenge (nothing is changed)
            RateLimited: lockout active for ip_address
            InternalError: persistence fault
        """
        email = normalize_email(email)
        with self._transaction("verify_magic_link"):
            self._require_allowed(ip_address, "verify_magic_link")

            credential = crud.get_credential_by_email(self.db, email)
            if credential is None:
                self._fail_and_commit(ip_address, email, Unauthorized(email))

            check = self.devices.redeem(credential.id, device_label, candidate, ip_address)

            if check.status == ChallengeStatus.REJECTED:
                logger.info(f"Magic link rejected for {email} from {ip_address}")
                self._fail_and_commit(ip_address, email, Unauthorized(email))

            if check.status == ChallengeStatus.EXPIRED:
                logger.info(f"Magic link expired for {email}, issuing a new one")
                issued = self._issue_challenge(credential, device_label, ip_address)
                outcome = VerifyOutcome(status=VerifyStatus.RETRY, challenge=issued)
            else:
                info = crud.get_info(self.db, credential.id)
                session_token = self.tokens.issue(str(credential.id), check.device.device_id, bool(info.is_admin))
                self.throttle.reset(ip_address)
                outcome = VerifyOutcome(
                    status=VerifyStatus.VERIFIED,
                    session_token=session_token,
                    device_id=check.device.device_id,
                )

        if outcome.status == VerifyStatus.VERIFIED:
            logger.info(f"Device verified for {email} (device_id: {outcome.device_id})")
        return outcome

    def request_password_reset(self, email: str) -> Optional[PasswordResetIssued]:
        """
        Put a fresh reset token in the account's single reset slot.

        A new request overwrites any previous token. Returns None for an
        unknown email so callers respond identically either way.
        """
        email = normalize_email(email)
        with self._transaction("request_password_reset"):
            credential = crud.get_credential_by_email(self.db, email)
            if credential is None:
                logger.info("Password reset requested for non-existent email")
                return None

            token = secrets.token_urlsafe(32)
            credential.reset_token = token
            credential.reset_token_expires_at = self.clock() + self.password_reset_ttl
            crud.put_credential(self.db, credential)

        logger.info(f"Password reset token issued for {email}")
        return PasswordResetIssued(email=email, first_name=self._first_name(credential), token=token)

    def confirm_password_reset(self, email: str, token: str, new_password: str) -> None:
        """
        Replace the password using the token from the reset slot.

        Raises:
            Unauthorized: unknown email, no pending token, wrong token, or expired token
            ValidationFailed: new password does not meet the strength rules
            InternalError: hashing, cipher or persistence fault
        """
        email = normalize_email(email)
        with self._transaction("confirm_password_reset"):
            credential = crud.get_credential_by_email(self.db, email)
            if credential is None or not credential.reset_token or not token:
                raise Unauthorized("no pending reset")

            if not hmac.compare_digest(credential.reset_token.encode("utf-8"), token.encode("utf-8")):
                raise Unauthorized("reset token mismatch")

            if credential.reset_token_expires_at is None or credential.reset_token_expires_at <= self.clock():
                credential.reset_token = None
                credential.reset_token_expires_at = None
                self.db.commit()
                raise Unauthorized("reset token expired")

            problems = password_problems(new_password)
            if problems:
                raise ValidationFailed([FieldError("new_password", message) for message in problems])

            digest = self.hasher.hash(new_password)
            if not digest:
                raise InternalError("password hashing failed")

            credential.password = self._encrypt(digest)
            credential.reset_token = None
            credential.reset_token_expires_at = None
            crud.put_credential(self.db, credential)

        logger.info(f"Password successfully reset for {email}")

    def user_exists(self, user_id: UUID) -> bool:
        try:
            return crud.get_credential(self.db, user_id) is not None
        except SQLAlchemyError as e:
            logger.error(f"User lookup failed: {e.__class__.__name__}")
            raise InternalError("user_exists") from e

    def is_admin(self, user_id: UUID) -> bool:
        """Authoritative admin lookup; a token's admin claim alone is never enough."""
        try:
            info = crud.get_info(self.db, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Admin lookup failed: {e.__class__.__name__}")
            raise InternalError("is_admin") from e
        return bool(info is not None and info.is_admin)

    def get_profile(self, user_id: UUID) -> AccountProfile:
        """
        Load and decrypt an account's PII.

        Raises:
            NotFound: unknown user id
            InternalError: a required field failed to decrypt
        """
        try:
            credential = crud.get_credential(self.db, user_id)
            info = crud.get_info(self.db, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Profile lookup failed: {e.__class__.__name__}")
            raise InternalError("get_profile") from e
        if credential is None or info is None:
            raise NotFound(str(user_id))

        fields = {}
        for field in ENCRYPTED_FIELDS:
            value = self.cipher.decrypt(getattr(credential, field))
            if not value and field not in OPTIONAL_FIELDS:
                logger.error(f"Stored field '{field}' could not be decrypted for user {user_id}")
                raise InternalError("field decryption failed")
            fields[field] = value

        return AccountProfile(user_id=credential.id, email=credential.email, is_admin=bool(info.is_admin), fields=fields)

    def list_devices(self, user_id: UUID) -> List[DeviceEntry]:
        try:
            return self.devices.list_devices(user_id)
        except SQLAlchemyError as e:
            logger.error(f"Device lookup failed: {e.__class__.__name__}")
            raise InternalError("list_devices") from e
