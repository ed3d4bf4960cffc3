"""Seed script for a demo election run through to the tally."""
from __future__ import annotations

import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy.orm import Session

from election_ledger.db.session import engine, get_session
from election_ledger.models import Base
from election_ledger.services.elections import apply_command, create_election

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ADMINISTRATOR = "admin@demo.local"
VOTERS = ("alice@demo.local", "bob@demo.local", "carol@demo.local")
PROPOSALS = ("more coffee breaks", "longer nap times")


def seed(session: Session) -> str:
    """Create a demo election, register proposals, vote and tally."""

    election = create_election(session, administrator=ADMINISTRATOR)
    election_id = election.id
    logger.info("Created election %s", election_id)

    for voter in VOTERS:
        apply_command(
            session, election_id=election_id, caller=ADMINISTRATOR, command="add_to_whitelist", identity=voter
        )

    apply_command(session, election_id=election_id, caller=ADMINISTRATOR, command="start_proposals_registration")
    for description in PROPOSALS:
        apply_command(
            session,
            election_id=election_id,
            caller=VOTERS[0],
            command="register_proposal",
            description=description,
        )
    apply_command(session, election_id=election_id, caller=ADMINISTRATOR, command="end_proposals_registration")

    apply_command(session, election_id=election_id, caller=ADMINISTRATOR, command="start_voting_session")
    for voter, proposal_id in zip(VOTERS, (0, 1, 1)):
        apply_command(
            session, election_id=election_id, caller=voter, command="register_vote", proposal_id=proposal_id
        )
    apply_command(session, election_id=election_id, caller=ADMINISTRATOR, command="end_voting_session")
    result = apply_command(session, election_id=election_id, caller=ADMINISTRATOR, command="tally_votes")

    logger.info(
        "Election %s tallied, winning proposal %s",
        election_id,
        result.ledger.get_winning_proposal_id(),
    )
    return election_id


def main() -> None:
    Base.metadata.create_all(bind=engine)
    with get_session() as session:
        seed(session)


if __name__ == "__main__":
    main()
