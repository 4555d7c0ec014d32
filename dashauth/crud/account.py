"""
Persistence operations for credentials, account info and attempt counters.

These helpers only add/flush; the caller owns the transaction and decides
when to commit or roll back, so a registration writes both rows atomically.
"""

from typing import Optional
from uuid import UUID
from sqlalchemy.orm import Session
from dashauth.models.credential import Credential
from dashauth.models.account_info import AccountInfo
from dashauth.models.login_attempt import LoginAttempt


def get_credential_by_email(db: Session, email: str) -> Optional[Credential]:
    return db.query(Credential).filter(Credential.email == email).first()


def get_credential(db: Session, user_id: UUID) -> Optional[Credential]:
    return db.query(Credential).filter(Credential.id == user_id).first()


def credential_exists(db: Session, email: str) -> bool:
    return db.query(Credential.id).filter(Credential.email == email).first() is not None


def put_credential(db: Session, credential: Credential) -> Credential:
    db.add(credential)
    db.flush()
    return credential


def get_info(db: Session, user_id: UUID) -> Optional[AccountInfo]:
    return db.query(AccountInfo).filter(AccountInfo.user_id == user_id).first()


def get_info_for_update(db: Session, user_id: UUID) -> Optional[AccountInfo]:
    """
    Load the info row for a read-modify-write of the device list.

    Takes a row lock where the backend supports it; the version counter
    catches the rest.
    """
    return (
        db.query(AccountInfo)
        .filter(AccountInfo.user_id == user_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def put_info(db: Session, info: AccountInfo) -> AccountInfo:
    db.add(info)
    db.flush()
    return info


def get_attempt(db: Session, ip_address: str) -> Optional[LoginAttempt]:
    return db.query(LoginAttempt).filter(LoginAttempt.ip_address == ip_address).first()


def put_attempt(db: Session, attempt: LoginAttempt) -> LoginAttempt:
    db.add(attempt)
    db.flush()
    return attempt
