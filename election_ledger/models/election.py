"""Election ORM models."""
from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from election_ledger.models.base import Base, TimestampMixin


class Election(TimestampMixin, Base):
    """Persisted state of one election ledger."""

    __tablename__ = "elections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    administrator: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    winning_proposal_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    restrict_whitelist: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    voters = relationship(
        "ElectionVoter",
        back_populates="election",
        cascade="all, delete-orphan",
        order_by="ElectionVoter.whitelist_position",
    )
    proposals = relationship(
        "ElectionProposal",
        back_populates="election",
        cascade="all, delete-orphan",
        order_by="ElectionProposal.position",
    )
    events = relationship(
        "LedgerEventRecord",
        back_populates="election",
        cascade="all, delete-orphan",
        order_by="LedgerEventRecord.sequence",
    )


class ElectionVoter(TimestampMixin, Base):
    """Whitelisted identity and its ballot state."""

    __tablename__ = "election_voters"
    __table_args__ = (
        UniqueConstraint("election_id", "identity", name="uq_election_voters_identity"),
        UniqueConstraint("election_id", "whitelist_position", name="uq_election_voters_position"),
        Index("ix_election_voters_election_id", "election_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    election_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("elections.id", ondelete="CASCADE"), nullable=False
    )
    identity: Mapped[str] = mapped_column(String(128), nullable=False)
    whitelist_position: Mapped[int] = mapped_column(Integer, nullable=False)
    is_registered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    has_voted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    voted_proposal_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    election = relationship("Election", back_populates="voters")


class ElectionProposal(TimestampMixin, Base):
    """Proposal submitted during proposal registration."""

    __tablename__ = "election_proposals"
    __table_args__ = (
        UniqueConstraint("election_id", "position", name="uq_election_proposals_position"),
        Index("ix_election_proposals_election_id", "election_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    election_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("elections.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    election = relationship("Election", back_populates="proposals")


__all__ = ["Election", "ElectionProposal", "ElectionVoter"]
