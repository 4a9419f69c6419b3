# shiftboard/models/user.py

import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, text

from shiftboard.db import Base
from shiftboard.utils.dates import utc_now


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"


class User(Base):
    """
    Staff account of the ski school. Accounts are created from a LINE Login
    profile, and only through an invitation (or the admin seed script).
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    line_user_id = Column(String(64), unique=True, nullable=False, index=True)
    display_name = Column(String, nullable=False)
    picture_url = Column(String(512), nullable=True)
    role = Column(
        Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.MEMBER,
        server_default=text("'MEMBER'"),
    )
    is_active = Column(Boolean, nullable=False, default=True, server_default=text("true"))
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f"<User(id={self.id}, line_user_id={self.line_user_id}, display_name={self.display_name}, role={self.role}, is_active={self.is_active})>"
