"""
Credential model: one row per registered account.

Every PII attribute and the password hash are stored individually encrypted
(see FieldCipher). Only the email stays in clear text because it is the login
lookup key.
"""

import uuid
from sqlalchemy import Column, String, Text, Uuid
from sqlalchemy.orm import relationship
from dashauth.core.database import Base, UTCDateTime, utcnow

# Encrypted attribute columns, in registration order
ENCRYPTED_FIELDS = (
    "first_name",
    "last_name",
    "cpf",
    "phone",
    "address",
    "address2",
    "city",
    "state",
    "zip_code",
    "country",
    "birthdate",
    "company",
)


class Credential(Base):
    __tablename__ = "credentials"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String(320), unique=True, nullable=False, index=True)

    # Encrypted bcrypt digest
    password = Column(Text, nullable=False)

    # Encrypted PII
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    cpf = Column(Text, nullable=False)
    phone = Column(Text, nullable=False)
    address = Column(Text, nullable=False)
    address2 = Column(Text, nullable=False, default="")
    city = Column(Text, nullable=False)
    state = Column(Text, nullable=False)
    zip_code = Column(Text, nullable=False)
    country = Column(Text, nullable=False)
    birthdate = Column(Text, nullable=False)
    company = Column(Text, nullable=False, default="")

    # Single-slot password reset token
    reset_token = Column(String, nullable=True, index=True)
    reset_token_expires_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    info = relationship("AccountInfo", back_populates="credential", uselist=False, cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Credential(id={self.id}, email='{self.email}')>"
