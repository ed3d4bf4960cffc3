"""Initial schema for election ledgers."""
from __future__ import annotations

from collections.abc import Iterable

import sqlalchemy as sa
from alembic import op

revision = "20241017_01"
down_revision = None
branch_labels = None
depends_on: Iterable[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:  # noqa: D401
    """Create election ledger tables and constraints."""

    op.create_table(
        "elections",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("administrator", sa.String(length=128), nullable=False),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("winning_proposal_id", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("restrict_whitelist", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint("status BETWEEN 0 AND 5", name="ck_elections_status"),
    )

    op.create_table(
        "election_voters",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("election_id", sa.String(length=36), nullable=False),
        sa.Column("identity", sa.String(length=128), nullable=False),
        sa.Column("whitelist_position", sa.Integer(), nullable=False),
        sa.Column("is_registered", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("has_voted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("voted_proposal_id", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["election_id"], ["elections.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("election_id", "identity", name="uq_election_voters_identity"),
        sa.UniqueConstraint("election_id", "whitelist_position", name="uq_election_voters_position"),
    )
    op.create_index("ix_election_voters_election_id", "election_voters", ["election_id"])

    op.create_table(
        "election_proposals",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("election_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("vote_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["election_id"], ["elections.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("election_id", "position", name="uq_election_proposals_position"),
    )
    op.create_index("ix_election_proposals_election_id", "election_proposals", ["election_id"])

    op.create_table(
        "ledger_events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("election_id", sa.String(length=36), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("caller", sa.String(length=128)),
        *_timestamps(),
        sa.ForeignKeyConstraint(["election_id"], ["elections.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("election_id", "sequence", name="uq_ledger_events_sequence"),
    )
    op.create_index("ix_ledger_events_election_id", "ledger_events", ["election_id"])


def downgrade() -> None:  # noqa: D401
    """Drop election ledger tables."""

    op.drop_index("ix_ledger_events_election_id", table_name="ledger_events")
    op.drop_table("ledger_events")
    op.drop_index("ix_election_proposals_election_id", table_name="election_proposals")
    op.drop_table("election_proposals")
    op.drop_index("ix_election_voters_election_id", table_name="election_voters")
    op.drop_table("election_voters")
    op.drop_table("elections")
