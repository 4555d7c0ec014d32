"""
Database models package.
"""

from dashauth.models.credential import Credential
from dashauth.models.account_info import AccountInfo
from dashauth.models.login_attempt import LoginAttempt

__all__ = ["Credential", "AccountInfo", "LoginAttempt"]
