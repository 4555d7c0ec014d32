"""
Account endpoints: registration, login, magic-link verification and password reset.

- POST /account/register: Create an account and email the first magic link
- POST /account/login: Check the password and email a magic link for this device
- POST /account/verify/{token}: Redeem a magic link for a session token
- POST /account/auth/generate: Email a new magic link (new device or resend)
- POST /account/query-password: Email a password reset link
- POST /account/reset-password/{token}: Set a new password

Failures other than field validation come back as one generic 401 so the
responses never reveal whether an account exists or an address is locked out.
"""

import logging
from fastapi import APIRouter, Depends, status

from dashauth.core.celery_utils import queue_task_safely
from dashauth.core.deps import get_account_directory, get_client_ip, get_device_label
from dashauth.core.directory import AccountDirectory, ChallengeIssued, VerifyStatus
from dashauth.schemas.account import (
    RegisterRequest,
    RegisterResponse,
    LoginRequest,
    EmailRequest,
    ResetPasswordRequest,
    MessageResponse,
    VerifyResponse,
)
from dashauth.tasks.email_tasks import send_magic_link_email_task, send_password_reset_email_task

router = APIRouter(prefix="/account", tags=["Account"])
logger = logging.getLogger(__name__)

MAGIC_LINK_SENT = "If the credentials are valid, a confirmation link has been sent to your email."
RESET_LINK_SENT = "If an account with that email exists, a password reset link has been sent."


def _send_magic_link(email: str, token: str, user_name: str) -> None:
    success = queue_task_safely(
        send_magic_link_email_task,
        to_email=email,
        token=token,
        user_name=user_name,
    )
    if success:
        logger.info(f"Magic link email queued for {email}")
    else:
        # Don't fail the request if email fails - user can request another link
        logger.error(f"Failed to queue magic link email for {email}")


def _send_challenge(issued: ChallengeIssued) -> None:
    _send_magic_link(issued.email, issued.magic_token, issued.first_name)


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=RegisterResponse)
def register(
    request: RegisterRequest,
    directory: AccountDirectory = Depends(get_account_directory),
    device_label: str = Depends(get_device_label),
    ip_address: str = Depends(get_client_ip),
):
    """
    Register a new account.

    Every invalid field is reported in one 400 response. On success the
    first device is recorded and a magic link is emailed to confirm it.
    """
    outcome = directory.register(request.model_dump(), device_label, ip_address)
    _send_magic_link(outcome.email, outcome.magic_token, outcome.first_name)

    return RegisterResponse(message="Account created. Check your email to confirm this device.", user_id=str(outcome.user_id))


@router.post("/login", status_code=status.HTTP_202_ACCEPTED, response_model=MessageResponse)
def login(
    request: LoginRequest,
    directory: AccountDirectory = Depends(get_account_directory),
    device_label: str = Depends(get_device_label),
    ip_address: str = Depends(get_client_ip),
):
    """
    Check email and password.

    No session token is returned here: a magic link is emailed and the
    session is issued once it is redeemed from this device.
    """
    issued = directory.login(request.email, request.password, device_label, ip_address)
    _send_challenge(issued)

    return MessageResponse(message=MAGIC_LINK_SENT)


@router.post("/verify/{token}", response_model=VerifyResponse)
def verify_magic_link(
    token: str,
    request: EmailRequest,
    directory: AccountDirectory = Depends(get_account_directory),
    device_label: str = Depends(get_device_label),
    ip_address: str = Depends(get_client_ip),
):
    """
    Redeem a magic link.

    Returns a bearer token when the link matches this device's pending
    challenge. An expired link triggers a fresh email and returns "retry".
    """
    outcome = directory.verify_magic_link(request.email, device_label, token, ip_address)

    if outcome.status == VerifyStatus.RETRY:
        _send_challenge(outcome.challenge)
        return VerifyResponse(status=outcome.status.value)

    return VerifyResponse(status=outcome.status.value, token=outcome.session_token, token_type="bearer")


@router.post("/auth/generate", status_code=status.HTTP_202_ACCEPTED, response_model=MessageResponse)
def request_magic_link(
    request: EmailRequest,
    directory: AccountDirectory = Depends(get_account_directory),
    device_label: str = Depends(get_device_label),
    ip_address: str = Depends(get_client_ip),
):
    """
    Email a new magic link for this device.

    Always returns the same response to prevent email enumeration.
    """
    issued = directory.request_magic_link(request.email, device_label, ip_address)
    if issued is not None:
        _send_challenge(issued)

    return MessageResponse(message=MAGIC_LINK_SENT)


@router.post("/query-password", response_model=MessageResponse)
def forgot_password(
    request: EmailRequest,
    directory: AccountDirectory = Depends(get_account_directory),
):
    """
    Send password reset email.

    Always returns success to prevent email enumeration attacks.
    """
    issued = directory.request_password_reset(request.email)

    if issued is not None:
        success = queue_task_safely(
            send_password_reset_email_task,
            to_email=issued.email,
            token=issued.token,
            user_name=issued.first_name,
        )
        if not success:
            logger.error(f"Failed to queue password reset email for {issued.email}")

    return MessageResponse(message=RESET_LINK_SENT)


@router.post("/reset-password/{token}", response_model=MessageResponse)
def reset_password(
    token: str,
    request: ResetPasswordRequest,
    directory: AccountDirectory = Depends(get_account_directory),
):
    """
    Reset password using reset token.

    The token must match the account's pending reset and not be expired.
    """
    directory.confirm_password_reset(request.email, token, request.new_password)

    return MessageResponse(message="Password has been reset successfully. You can now login with your new password.")
