"""User model — identity plus the billing-owned plan."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from design2code.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=True, unique=True)
    name = Column(String(255), nullable=True)

    # Plan (written by billing, read-only here)
    plan = Column(String(50), nullable=False, default="starter")
    plan_expiry_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
