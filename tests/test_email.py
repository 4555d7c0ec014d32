"""
Tests for outbound email: SES calls and the Celery tasks around them.
"""

import pytest
from botocore.stub import Stubber

from dashauth.core.config import get_settings
from dashauth.services.email_service import EmailService
from dashauth.tasks import email_tasks


@pytest.fixture
def email_service():
    service = EmailService(get_settings())
    with Stubber(service.ses_client) as stubber:
        service.stubber = stubber
        yield service


class TestEmailService:

    def test_links_are_url_safe(self, email_service):
        url = email_service.magic_link_url("ab$c&d/e")

        assert url.endswith("/ab%24c%26d%2Fe")
        assert url.startswith(get_settings().MAGIC_LINK_BASE_URL)

    def test_magic_link_sent(self, email_service):
        email_service.stubber.add_response("send_email", {"MessageId": "m-1"})

        assert email_service.send_magic_link_email("maria@example.com", "token123", "Maria")
        email_service.stubber.assert_no_pending_responses()

    def test_ses_rejection_reported(self, email_service):
        email_service.stubber.add_client_error("send_email", service_error_code="MessageRejected")

        assert not email_service.send_password_reset_email("maria@example.com", "token123")


class FakeEmailService:

    def __init__(self, ok=True):
        self.ok = ok
        self.sent = []

    def send_magic_link_email(self, to_email, token, user_name=None):
        self.sent.append((to_email, token, user_name))
        return self.ok

    def send_password_reset_email(self, to_email, token, user_name=None):
        self.sent.append((to_email, token, user_name))
        return self.ok


class TestEmailTasks:

    def test_magic_link_task(self, monkeypatch):
        fake = FakeEmailService()
        monkeypatch.setattr(email_tasks, "get_email_service", lambda: fake)

        result = email_tasks.send_magic_link_email_task(to_email="maria@example.com", token="t", user_name="Maria")

        assert result == {"status": "success", "email": "maria@example.com"}
        assert fake.sent == [("maria@example.com", "t", "Maria")]

    def test_failed_delivery_raises(self, monkeypatch):
        monkeypatch.setattr(email_tasks, "get_email_service", lambda: FakeEmailService(ok=False))

        with pytest.raises(email_tasks.EmailDeliveryError):
            email_tasks.send_password_reset_email_task(to_email="maria@example.com", token="t")
