"""
Outbound account email over AWS SES.

Two messages: the magic link that confirms a device and the password reset
link. Tokens only ever appear inside the link; they are never logged.
"""

import logging
from functools import lru_cache
from typing import Any, Dict, Optional
from urllib.parse import quote
import boto3
from botocore.exceptions import ClientError, BotoCoreError
from dashauth.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# SES error codes that point at a configuration problem rather than a bad recipient
_SES_HINTS = {
    'MailFromDomainNotVerified': "Sender domain not verified in SES",
    'MessageRejected': "SES rejected the message (sandbox recipient or content)",
    'AccessDenied': "IAM policy does not allow ses:SendEmail",
}


def _client_kwargs(settings: Settings) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {'region_name': settings.AWS_REGION}
    # Explicit keys win; otherwise boto3 falls back to the instance role
    if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
        kwargs['aws_access_key_id'] = settings.AWS_ACCESS_KEY_ID
        kwargs['aws_secret_access_key'] = settings.AWS_SECRET_ACCESS_KEY
    return kwargs


class EmailService:
    """Renders account emails and hands them to SES."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.sender = f"{settings.AWS_SES_FROM_NAME} <{settings.AWS_SES_FROM_EMAIL}>"
        self.ses_client = boto3.client('ses', **_client_kwargs(settings))

    def _send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        message = {
            'Subject': {'Data': subject, 'Charset': 'UTF-8'},
            'Body': {
                'Text': {'Data': text_body, 'Charset': 'UTF-8'},
                'Html': {'Data': html_body, 'Charset': 'UTF-8'},
            },
        }
        try:
            response = self.ses_client.send_email(
                Source=self.sender,
                Destination={'ToAddresses': [to_email]},
                Message=message,
            )
        except ClientError as e:
            error = e.response.get('Error', {})
            code = error.get('Code', 'Unknown')
            logger.error(f"SES refused '{subject}' for {to_email}: {code} - {_SES_HINTS.get(code, error.get('Message', ''))}")
            return False
        except BotoCoreError as e:
            logger.error(f"SES unreachable sending '{subject}' to {to_email}: {e}")
            return False

        logger.info(f"Email '{subject}' sent to {to_email} (MessageId: {response.get('MessageId')})")
        return True

    def magic_link_url(self, token: str) -> str:
        return f"{self.settings.MAGIC_LINK_BASE_URL.rstrip('/')}/{quote(token, safe='')}"

    def password_reset_url(self, token: str) -> str:
        return f"{self.settings.PASSWORD_RESET_BASE_URL.rstrip('/')}/{quote(token, safe='')}"

    def send_magic_link_email(self, to_email: str, token: str, user_name: Optional[str] = None) -> bool:
        """
        Send a magic link that confirms the current device.

        Args:
            to_email: Recipient email address
            token: Magic-link challenge id
            user_name: Optional first name for personalization

        Returns:
            bool: True if email sent successfully, False otherwise
        """
        link = self.magic_link_url(token)
        minutes = self.settings.MAGIC_LINK_TTL_MINUTES
        greeting = f"Hi {user_name}," if user_name else "Hi there,"

        html_body = _build_html(
            title="Confirm your sign-in",
            greeting=greeting,
            intro="Use the button below to confirm this device and finish signing in to your dashboard.",
            link=link,
            button="Confirm device",
            footer=f"This link expires in <strong>{minutes} minutes</strong> and only works on the device that requested it.",
        )
        text_body = f"""{greeting}

Confirm this device and finish signing in to your dashboard:

{link}

This link expires in {minutes} minutes and only works on the device that requested it.

If you did not try to sign in, you can safely ignore this email.
"""
        return self._send(to_email, "Confirm your sign-in", html_body, text_body)

    def send_password_reset_email(self, to_email: str, token: str, user_name: Optional[str] = None) -> bool:
        """Send the password reset link for the account's single reset slot."""
        link = self.password_reset_url(token)
        minutes = self.settings.PASSWORD_RESET_TTL_MINUTES
        greeting = f"Hi {user_name}," if user_name else "Hi there,"

        html_body = _build_html(
            title="Reset your password",
            greeting=greeting,
            intro="We received a request to reset your dashboard password.",
            link=link,
            button="Choose a new password",
            footer=f"This link expires in <strong>{minutes} minutes</strong>.",
        )
        text_body = f"""{greeting}

We received a request to reset your dashboard password. Open the link below to choose a new one:

{link}

This link expires in {minutes} minutes.

If you did not request a password reset, you can safely ignore this email.
"""
        return self._send(to_email, "Reset your password", html_body, text_body)


def _build_html(title: str, greeting: str, intro: str, link: str, button: str, footer: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>{title}</title>
</head>
<body style="margin: 0; padding: 32px 0; font-family: Helvetica, Arial, sans-serif; background: #f5f6f8;">
    <div style="max-width: 560px; margin: 0 auto; padding: 32px; background: #ffffff; border-radius: 8px;">
        <h1 style="margin: 0 0 24px; font-size: 24px; color: #1f2933;">{title}</h1>
        <p style="color: #52606d; font-size: 16px;">{greeting}</p>
        <p style="color: #52606d; font-size: 16px;">{intro}</p>
        <p style="text-align: center; margin: 32px 0;">
            <a href="{link}" style="background: #2563eb; color: #ffffff; padding: 12px 24px; border-radius: 6px; text-decoration: none;">{button}</a>
        </p>
        <p style="color: #7b8794; font-size: 13px;">{footer}</p>
        <p style="color: #9aa5b1; font-size: 12px; word-break: break-all;">{link}</p>
    </div>
</body>
</html>
"""


@lru_cache
def get_email_service() -> EmailService:
    return EmailService(get_settings())
