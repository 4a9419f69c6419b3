# shiftboard/models/invitation_token.py

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from shiftboard.db import Base
from shiftboard.utils.dates import utc_now


class InvitationToken(Base):
    """
    Invitation that gates self-registration through LINE Login.

    Rules:
        - at most one row is active and unexpired at a time (enforced when a new one is created);
        - max_uses = NULL means unlimited, used_count only grows;
        - rows are never deleted, deactivation is is_active = false.
    """
    __tablename__ = "invitation_tokens"

    id = Column(Integer, primary_key=True)
    token = Column(String(68), unique=True, index=True, nullable=False)
    description = Column(String, nullable=True)
    expires_at = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default=text("true"))
    max_uses = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0, server_default=text("0"))
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    creator = relationship("User", foreign_keys=[created_by])

    __table_args__ = (
        Index("ix_invitation_tokens_active_expires", "is_active", "expires_at"),
        Index("ix_invitation_tokens_created_by", "created_by"),
    )

    def __repr__(self):
        return f"<InvitationToken(id={self.id}, created_by={self.created_by}, is_active={self.is_active}, used_count={self.used_count}, max_uses={self.max_uses})>"
