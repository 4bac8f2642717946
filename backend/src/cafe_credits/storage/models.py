"""Database models."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class PersonModel(Base):
    """Event attendee."""

    __tablename__ = "people"

    id = Column(Integer, primary_key=True)
    first_name = Column(String(200), nullable=False)
    last_name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False, unique=True, index=True)
    linkedin = Column(String(500))
    twitter = Column(String(200))
    drink = Column(String(200))
    food = Column(String(200))
    working_on = Column(Text)
    sent_credits = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    # Relationships
    credits = relationship("CreditModel", back_populates="person")

    def __repr__(self) -> str:
        return f"<PersonModel(id={self.id}, email='{self.email}')>"


class CreditModel(Base):
    """Referral credit."""

    __tablename__ = "credits"

    id = Column(Integer, primary_key=True)
    url = Column(String(500), nullable=False, unique=True)
    code = Column(String(100), nullable=False, unique=True, index=True)
    amount = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="available", index=True)
    assigned_to = Column(Integer, ForeignKey("people.id"))
    checked_at = Column(DateTime(timezone=True), default=_utcnow)
    sent_at = Column(DateTime(timezone=True))

    # Relationships
    person = relationship("PersonModel", back_populates="credits")

    def __repr__(self) -> str:
        return f"<CreditModel(id={self.id}, code='{self.code}', status='{self.status}')>"
