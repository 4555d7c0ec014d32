"""
Tests for the administrator check.

The admin claim in a token is only honoured while the account still holds
the role in the database.
"""

import os
from urllib.parse import quote

from dashauth.core.security import SessionTokenIssuer
from dashauth.crud import account as crud

API = "/api/v1"
EMAIL = "maria.silva@example.com"
PASSWORD = "Str0ng!Pass"


def _set_admin(db_session, is_admin):
    credential = crud.get_credential_by_email(db_session, EMAIL)
    info = crud.get_info(db_session, credential.id)
    info.is_admin = is_admin
    db_session.commit()


def _sign_in(client, sent_emails):
    client.post(f"{API}/account/login", json={"email": EMAIL, "password": PASSWORD})
    token = sent_emails[-1][1]["token"]
    response = client.post(f"{API}/account/verify/{quote(token, safe='')}", json={"email": EMAIL})
    return {"Authorization": f"Bearer {response.json()['token']}"}


class TestAdminCheck:

    def test_admin_granted(self, client, registration_data, sent_emails, db_session):
        client.post(f"{API}/account/register", json=registration_data)
        _set_admin(db_session, True)
        headers = _sign_in(client, sent_emails)

        response = client.post(f"{API}/account/auth", headers=headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Access granted, administrator"

    def test_regular_user_refused(self, client, registration_data, sent_emails):
        client.post(f"{API}/account/register", json=registration_data)
        headers = _sign_in(client, sent_emails)

        response = client.post(f"{API}/account/auth", headers=headers)

        assert response.status_code == 401

    def test_revoked_role_refused(self, client, registration_data, sent_emails, db_session):
        client.post(f"{API}/account/register", json=registration_data)
        _set_admin(db_session, True)
        headers = _sign_in(client, sent_emails)

        _set_admin(db_session, False)
        response = client.post(f"{API}/account/auth", headers=headers)

        assert response.status_code == 401

    def test_claim_without_role_refused(self, client, registration_data, db_session):
        client.post(f"{API}/account/register", json=registration_data)
        user_id = crud.get_credential_by_email(db_session, EMAIL).id
        forged = SessionTokenIssuer(os.environ["JWT_SECRET_KEY"]).issue(str(user_id), "device", is_admin=True)

        response = client.post(f"{API}/account/auth", headers={"Authorization": f"Bearer {forged}"})

        assert response.status_code == 401

    def test_role_without_claim_refused(self, client, registration_data, sent_emails, db_session):
        client.post(f"{API}/account/register", json=registration_data)
        headers = _sign_in(client, sent_emails)

        _set_admin(db_session, True)
        response = client.post(f"{API}/account/auth", headers=headers)

        assert response.status_code == 401
