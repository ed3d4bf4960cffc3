"""Persisted election ledgers backed by the database."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Literal

from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from election_ledger.core.config import get_settings
from election_ledger.models import Election, ElectionProposal, ElectionVoter, LedgerEventRecord
from election_ledger.obs import ledger_command_span, record_ledger_events, record_ledger_rejection
from election_ledger.services.events import LedgerEvent
from election_ledger.services.ledger import ElectionLedger, LedgerError, Proposal, Voter

logger = logging.getLogger(__name__)

LedgerCommand = Literal[
    "add_to_whitelist",
    "start_proposals_registration",
    "end_proposals_registration",
    "start_voting_session",
    "end_voting_session",
    "register_proposal",
    "register_vote",
    "tally_votes",
]
LEDGER_COMMANDS: frozenset[str] = frozenset(LedgerCommand.__args__)  # type: ignore[attr-defined]


class ElectionNotFoundError(LedgerError):
    """Raised when the supplied election identifier does not exist."""


@dataclass(slots=True, frozen=True)
class CommandResult:
    """Return value for applied ledger commands."""

    election_id: str
    events: tuple[LedgerEvent, ...]
    ledger: ElectionLedger


@contextmanager
def _serializable_transaction(session: Session) -> None:
    """Context manager enforcing SERIALIZABLE isolation for the transaction."""

    bind = session.get_bind()
    if bind is None:
        raise RuntimeError("Session is not bound to an engine")

    # The isolation level must be set before any query runs in the transaction.
    if session.in_transaction():
        session.commit()

    dialect = bind.dialect.name
    if dialect == "sqlite":
        session.execute(text("BEGIN IMMEDIATE"))
    else:
        session.execute(text("SET TRANSACTION ISOLATION LEVEL SERIALIZABLE"))

    try:
        yield
        session.commit()
    except Exception:
        session.rollback()
        raise


def _get_election(session: Session, *, election_id: str) -> Election:
    election = session.get(Election, election_id)
    if election is None:
        raise ElectionNotFoundError(f"Election '{election_id}' was not found")
    return election


def _to_ledger(election: Election) -> ElectionLedger:
    return ElectionLedger.restore(
        administrator=election.administrator,
        status=election.status,
        voters=[
            (
                row.identity,
                Voter(
                    is_registered=row.is_registered,
                    has_voted=row.has_voted,
                    voted_proposal_id=row.voted_proposal_id,
                ),
            )
            for row in election.voters
        ],
        proposals=[
            Proposal(description=row.description, vote_count=row.vote_count) for row in election.proposals
        ],
        winning_proposal_id=election.winning_proposal_id,
        restrict_whitelist_to_registration=election.restrict_whitelist,
    )


def _store_state(election: Election, ledger: ElectionLedger) -> None:
    election.status = int(ledger.status)
    election.winning_proposal_id = ledger.get_winning_proposal_id()

    stored_voters = {row.identity: row for row in election.voters}
    for position, (identity, voter) in enumerate(ledger.get_voters()):
        row = stored_voters.get(identity)
        if row is None:
            row = ElectionVoter(identity=identity, whitelist_position=position)
            election.voters.append(row)
        row.is_registered = voter.is_registered
        row.has_voted = voter.has_voted
        row.voted_proposal_id = voter.voted_proposal_id

    stored_proposals = {row.position: row for row in election.proposals}
    for position, proposal in enumerate(ledger.get_proposals()):
        row = stored_proposals.get(position)
        if row is None:
            row = ElectionProposal(position=position, description=proposal.description)
            election.proposals.append(row)
        row.vote_count = proposal.vote_count


def _append_events(
    session: Session, *, election_id: str, caller: str, events: Sequence[LedgerEvent]
) -> None:
    last_sequence = session.scalar(
        select(func.max(LedgerEventRecord.sequence)).where(LedgerEventRecord.election_id == election_id)
    )
    next_sequence = 0 if last_sequence is None else last_sequence + 1
    for offset, event in enumerate(events):
        session.add(
            LedgerEventRecord(
                election_id=election_id,
                sequence=next_sequence + offset,
                event_type=event.event_type,
                payload=event.payload(),
                caller=caller,
            )
        )


def create_election(
    session: Session,
    *,
    administrator: str,
    restrict_whitelist_to_registration: bool | None = None,
) -> Election:
    """Create an empty election owned by ``administrator``."""

    if restrict_whitelist_to_registration is None:
        restrict_whitelist_to_registration = get_settings().restrict_whitelist_to_registration
    ledger = ElectionLedger(
        administrator, restrict_whitelist_to_registration=restrict_whitelist_to_registration
    )

    with _serializable_transaction(session):
        election = Election(
            administrator=ledger.administrator,
            status=int(ledger.status),
            winning_proposal_id=ledger.get_winning_proposal_id(),
            restrict_whitelist=ledger.restrict_whitelist_to_registration,
        )
        session.add(election)
        session.flush()

    session.refresh(election)
    logger.info(
        "election created",
        extra={"election_id": election.id, "administrator": election.administrator},
    )
    return election


def load_ledger(session: Session, *, election_id: str) -> ElectionLedger:
    """Rebuild the in-memory ledger for a stored election."""

    return _to_ledger(_get_election(session, election_id=election_id))


def apply_command(
    session: Session,
    *,
    election_id: str,
    caller: str,
    command: LedgerCommand,
    **arguments: Any,
) -> CommandResult:
    """Apply one ledger command and persist its state and events atomically."""

    if command not in LEDGER_COMMANDS:
        raise ValueError(f"Unknown ledger command '{command}'")

    with ledger_command_span(command, **{"ledger.election_id": election_id, "ledger.caller": caller}):
        try:
            with _serializable_transaction(session):
                election = _get_election(session, election_id=election_id)
                ledger = _to_ledger(election)
                events = getattr(ledger, command)(caller, **arguments)
                _store_state(election, ledger)
                _append_events(session, election_id=election_id, caller=caller, events=events)
                session.flush()
        except LedgerError as exc:
            record_ledger_rejection(exc)
            logger.info(
                "ledger command rejected",
                extra={
                    "election_id": election_id,
                    "command": command,
                    "caller": caller,
                    "error": type(exc).__name__,
                },
            )
            raise

    record_ledger_events(events)
    for event in events:
        logger.info(
            "ledger event %s",
            event.event_type,
            extra={"election_id": election_id, "event_type": event.event_type, "payload": event.payload()},
        )
    return CommandResult(election_id=election_id, events=tuple(events), ledger=ledger)


def list_events(session: Session, *, election_id: str) -> list[LedgerEventRecord]:
    """Return the stored event history of an election in emission order."""

    _get_election(session, election_id=election_id)
    statement = (
        select(LedgerEventRecord)
        .where(LedgerEventRecord.election_id == election_id)
        .order_by(LedgerEventRecord.sequence)
    )
    return list(session.scalars(statement).all())


__all__ = [
    "CommandResult",
    "ElectionNotFoundError",
    "LEDGER_COMMANDS",
    "LedgerCommand",
    "apply_command",
    "create_election",
    "list_events",
    "load_ledger",
]
