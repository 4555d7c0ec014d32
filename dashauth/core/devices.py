"""
Device registry and magic-link challenge lifecycle.

Each account keeps a list of known devices, one entry per device label
(derived from the client's User-Agent). Every entry carries its own
challenge: Issued -> Verified, or Issued -> Expired (caller re-issues).
A wrong candidate is Rejected and changes nothing.

All mutations read, modify and write back the whole serialized list for the
user. The info row is versioned, so concurrent writers for the same user get
a StaleDataError on flush instead of a silent lost update.
"""

import enum
import hmac
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple
from uuid import UUID
from pydantic import BaseModel, TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from dashauth.core.errors import InternalError, NotFound
from dashauth.crud import account as crud
from dashauth.models.account_info import AccountInfo

logger = logging.getLogger(__name__)

MAX_DEVICE_LABEL_LENGTH = 255
UNKNOWN_DEVICE = "unknown"


def device_label_from_agent(user_agent: Optional[str]) -> str:
    """Derive the device label from a client-supplied agent string."""
    label = (user_agent or "").strip()
    if not label:
        return UNKNOWN_DEVICE
    return label[:MAX_DEVICE_LABEL_LENGTH]


class DeviceEntry(BaseModel):
    device: str
    device_id: str
    ip_address: str
    challenge_id: str = ""
    challenge_verified: bool = False
    challenge_expires_at: Optional[datetime] = None


_device_list = TypeAdapter(List[DeviceEntry])


def new_device_entry(device_label: str, ip_address: str) -> DeviceEntry:
    return DeviceEntry(device=device_label, device_id=str(uuid.uuid4()), ip_address=ip_address)


def dump_devices(devices: List[DeviceEntry]) -> str:
    return _device_list.dump_json(devices).decode("utf-8")


def load_devices(raw: str) -> List[DeviceEntry]:
    try:
        return _device_list.validate_json(raw or "[]")
    except ValidationError as e:
        logger.error(f"Stored device list is malformed: {e.error_count()} error(s)")
        raise InternalError("malformed device list") from e


class ChallengeStatus(str, enum.Enum):
    VERIFIED = "verified"
    EXPIRED = "expired"
    REJECTED = "rejected"


@dataclass
class ChallengeCheck:
    status: ChallengeStatus
    device: Optional[DeviceEntry] = None


class DeviceRegistry:
    """Per-user device list stored on AccountInfo.devices."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.db = db
        self.clock = clock

    def _load(self, user_id: UUID) -> Tuple[AccountInfo, List[DeviceEntry]]:
        info = crud.get_info_for_update(self.db, user_id)
        if info is None:
            raise NotFound(f"no account info for {user_id}")
        return info, load_devices(info.devices)

    def _store(self, info: AccountInfo, devices: List[DeviceEntry]) -> None:
        info.devices = dump_devices(devices)
        crud.put_info(self.db, info)

    @staticmethod
    def _find(devices: List[DeviceEntry], device_label: str) -> Optional[DeviceEntry]:
        for entry in devices:
            if entry.device == device_label:
                return entry
        return None

    def _compare(self, entry: Optional[DeviceEntry], candidate: str) -> ChallengeStatus:
        if entry is None or not entry.challenge_id or not candidate:
            return ChallengeStatus.REJECTED

        if not hmac.compare_digest(entry.challenge_id.encode("utf-8"), candidate.encode("utf-8")):
            return ChallengeStatus.REJECTED

        if entry.challenge_expires_at is None or entry.challenge_expires_at <= self.clock():
            return ChallengeStatus.EXPIRED

        return ChallengeStatus.VERIFIED

    def list_devices(self, user_id: UUID) -> List[DeviceEntry]:
        info = crud.get_info(self.db, user_id)
        if info is None:
            raise NotFound(f"no account info for {user_id}")
        return load_devices(info.devices)

    def upsert(self, user_id: UUID, device_label: str, ip_address: str) -> str:
        """
        Create or refresh the entry for device_label.

        A device id is assigned only when the entry is first created.

        Returns:
            The entry's device id
        """
        info, devices = self._load(user_id)
        entry = self._find(devices, device_label)
        if entry is None:
            entry = new_device_entry(device_label, ip_address)
            devices.append(entry)
            logger.info(f"New device registered for user {user_id}")
        else:
            entry.ip_address = ip_address
        self._store(info, devices)
        return entry.device_id

    def set_challenge(self, user_id: UUID, device_label: str, challenge_id: str, ttl: timedelta) -> None:
        """Put the entry for device_label into the Issued state."""
        info, devices = self._load(user_id)
        entry = self._find(devices, device_label)
        if entry is None:
            raise NotFound(f"unknown device for user {user_id}")
        entry.challenge_id = challenge_id
        entry.challenge_verified = False
        entry.challenge_expires_at = self.clock() + ttl
        self._store(info, devices)

    def clear_challenge(self, user_id: UUID, device_label: str, ip_address: Optional[str] = None) -> DeviceEntry:
        """Move the entry for device_label to Verified: challenge id cleared, verified set."""
        info, devices = self._load(user_id)
        entry = self._find(devices, device_label)
        if entry is None:
            raise NotFound(f"unknown device for user {user_id}")
        entry.challenge_id = ""
        entry.challenge_verified = True
        if ip_address:
            entry.ip_address = ip_address
        self._store(info, devices)
        return entry

    def check_challenge(self, user_id: UUID, device_label: str, candidate: str) -> ChallengeCheck:
        """
        Compare a candidate against the pending challenge for device_label.

        Read-only and unlocked; use redeem() to finalize.
        """
        entry = self._find(self.list_devices(user_id), device_label)
        status = self._compare(entry, candidate)
        return ChallengeCheck(status, entry if status != ChallengeStatus.REJECTED else None)

    def redeem(
        self, user_id: UUID, device_label: str, candidate: str, ip_address: Optional[str] = None
    ) -> ChallengeCheck:
        """
        Compare a candidate against the pending challenge and, on a match
        inside the window, move the entry to Verified.

        Comparison and clear happen on one locked load of the info row, so a
        challenge superseded by a concurrent issue can never be redeemed.
        EXPIRED and REJECTED leave the entry untouched.
        """
        info, devices = self._load(user_id)
        entry = self._find(devices, device_label)
        status = self._compare(entry, candidate)
        if status != ChallengeStatus.VERIFIED:
            return ChallengeCheck(status, entry if status == ChallengeStatus.EXPIRED else None)

        entry.challenge_id = ""
        entry.challenge_verified = True
        if ip_address:
            entry.ip_address = ip_address
        self._store(info, devices)
        return ChallengeCheck(ChallengeStatus.VERIFIED, entry)
