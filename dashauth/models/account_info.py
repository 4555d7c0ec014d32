"""
Account info model: role flag and the serialized device list.

The device list is rewritten as a whole on every change. `version` is the
mapper's version counter, so a write based on a stale read fails with
StaleDataError instead of silently discarding a concurrent update.
"""

from sqlalchemy import Column, Boolean, Integer, Text, Uuid, ForeignKey
from sqlalchemy.orm import relationship
from dashauth.core.database import Base, UTCDateTime, utcnow


class AccountInfo(Base):
    __tablename__ = "account_info"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("credentials.id", ondelete="CASCADE"), primary_key=True)
    is_admin = Column(Boolean, nullable=False, default=False)

    # JSON array of device entries
    devices = Column(Text, nullable=False, default="[]")

    version = Column(Integer, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    credential = relationship("Credential", back_populates="info")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<AccountInfo(user_id={self.user_id}, is_admin={self.is_admin}, version={self.version})>"
