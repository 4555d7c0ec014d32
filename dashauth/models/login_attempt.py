"""
Failed-attempt counter per source IP for brute-force lockout.
"""

from sqlalchemy import Column, String, Integer
from dashauth.core.database import Base, UTCDateTime


class LoginAttempt(Base):
    __tablename__ = "login_attempts"

    # IPv6 max length
    ip_address = Column(String(45), primary_key=True)

    # Last email tried from this address
    email = Column(String(320), nullable=False, default="")

    attempts = Column(Integer, nullable=False, default=0)
    last_attempt_at = Column(UTCDateTime, nullable=False)
    locked_until = Column(UTCDateTime, nullable=True)

    def __repr__(self):
        return f"<LoginAttempt(ip={self.ip_address}, attempts={self.attempts}, locked_until={self.locked_until})>"
