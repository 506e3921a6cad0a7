"""SQLAlchemy models for the Secret Santa database."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class ParticipantRow(Base):
    """Current roster. Replaced wholesale on every save."""

    __tablename__ = "participants"

    id: Mapped[str] = mapped_column(String(320), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    wishlist: Mapped[Optional[str]] = mapped_column(Text)
    address: Mapped[Optional[str]] = mapped_column(Text)
    exclusions: Mapped[Optional[str]] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<ParticipantRow(id={self.id!r}, name={self.name!r})>"


class ExclusionPairRow(Base):
    """Current exclusion pairs. Replaced wholesale on every save."""

    __tablename__ = "exclusion_pairs"

    row_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(700), nullable=False)
    participant1_id: Mapped[str] = mapped_column(String(320), nullable=False)
    participant2_id: Mapped[str] = mapped_column(String(320), nullable=False)
    is_unidirectional: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        arrow = "->" if self.is_unidirectional else "<->"
        return f"<ExclusionPairRow({self.participant1_id!r} {arrow} {self.participant2_id!r})>"


class YearRecord(Base):
    """Archived assignment set for one year."""

    __tablename__ = "year_records"

    year: Mapped[int] = mapped_column(Integer, primary_key=True)
    saved_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False
    )
    assignments: Mapped[List["YearAssignment"]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="YearAssignment.position",
    )

    def __repr__(self) -> str:
        return f"<YearRecord(year={self.year}, saved_at={self.saved_at})>"


class YearAssignment(Base):
    """One giver -> recipient edge of an archived year."""

    __tablename__ = "year_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    year: Mapped[int] = mapped_column(
        ForeignKey("year_records.year", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    giver_id: Mapped[str] = mapped_column(String(320), nullable=False)
    giver_name: Mapped[str] = mapped_column(String(200), nullable=False)
    giver_email: Mapped[str] = mapped_column(String(320), nullable=False)
    recipient_id: Mapped[str] = mapped_column(String(320), nullable=False)
    recipient_name: Mapped[str] = mapped_column(String(200), nullable=False)
    recipient_email: Mapped[str] = mapped_column(String(320), nullable=False)
    recipient_wishlist: Mapped[Optional[str]] = mapped_column(Text)
    recipient_address: Mapped[Optional[str]] = mapped_column(Text)

    record: Mapped[YearRecord] = relationship(back_populates="assignments")

    def __repr__(self) -> str:
        return f"<YearAssignment(year={self.year}, {self.giver_id!r} -> {self.recipient_id!r})>"
