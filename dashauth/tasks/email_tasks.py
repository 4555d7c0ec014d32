"""
Celery tasks for email operations.

Handles asynchronous email sending with retry logic.
"""

import logging
from typing import Optional
from celery import shared_task
from dashauth.services.email_service import get_email_service

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    pass


@shared_task(
    bind=True,
    name="send_magic_link_email_task",
    max_retries=3,
    default_retry_delay=30,
    autoretry_for=(EmailDeliveryError,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_jitter=True
)
def send_magic_link_email_task(self, to_email: str, token: str, user_name: Optional[str] = None):
    """
    Send a magic-link email.

    Retries with exponential backoff. The link is only valid for a few
    minutes, so retries stop well inside that window.
    """
    logger.info(f"Sending magic link email to {to_email} (attempt {self.request.retries + 1})")

    if not get_email_service().send_magic_link_email(to_email=to_email, token=token, user_name=user_name):
        if self.request.retries >= self.max_retries:
            logger.error(f"All retry attempts exhausted for magic link to {to_email}")
        raise EmailDeliveryError(f"Failed to send magic link email to {to_email}")

    return {"status": "success", "email": to_email}


@shared_task(
    bind=True,
    name="send_password_reset_email_task",
    max_retries=3,
    default_retry_delay=30,
    autoretry_for=(EmailDeliveryError,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_jitter=True
)
def send_password_reset_email_task(self, to_email: str, token: str, user_name: Optional[str] = None):
    """Send a password reset email."""
    logger.info(f"Sending password reset email to {to_email} (attempt {self.request.retries + 1})")

    if not get_email_service().send_password_reset_email(to_email=to_email, token=token, user_name=user_name):
        if self.request.retries >= self.max_retries:
            logger.error(f"All retry attempts exhausted for password reset to {to_email}")
        raise EmailDeliveryError(f"Failed to send password reset email to {to_email}")

    return {"status": "success", "email": to_email}
