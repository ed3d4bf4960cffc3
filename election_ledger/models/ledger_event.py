"""Ledger event ORM model."""
from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Index, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from election_ledger.models.base import Base, TimestampMixin


class LedgerEventRecord(TimestampMixin, Base):
    """Append-only history of events emitted by an election."""

    __tablename__ = "ledger_events"
    __table_args__ = (
        UniqueConstraint("election_id", "sequence", name="uq_ledger_events_sequence"),
        Index("ix_ledger_events_election_id", "election_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    election_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("elections.id", ondelete="CASCADE"), nullable=False
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    caller: Mapped[str | None] = mapped_column(String(128))

    election = relationship("Election", back_populates="events")


__all__ = ["LedgerEventRecord"]
