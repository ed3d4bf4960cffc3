from __future__ import annotations

import logging

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import TextClause

from election_ledger.models import Election, ElectionProposal, ElectionVoter
from election_ledger.services.elections import (
    ElectionNotFoundError,
    apply_command,
    create_election,
    list_events,
    load_ledger,
)
from election_ledger.services.events import Voted
from election_ledger.services.ledger import (
    AlreadyVotedError,
    InvalidProposalError,
    NotAuthorizedError,
    WorkflowViolationError,
)
from election_ledger.services.workflow import WorkflowStatus

ADMIN = "admin@example.com"
ALICE = "alice@example.com"
BOB = "bob@example.com"


def _open_voting(session: Session) -> str:
    election_id = create_election(session, administrator=ADMIN).id
    for voter in (ALICE, BOB):
        apply_command(session, election_id=election_id, caller=ADMIN, command="add_to_whitelist", identity=voter)
    apply_command(session, election_id=election_id, caller=ADMIN, command="start_proposals_registration")
    for description in ("more coffee breaks", "longer nap times"):
        apply_command(
            session, election_id=election_id, caller=ALICE, command="register_proposal", description=description
        )
    apply_command(session, election_id=election_id, caller=ADMIN, command="end_proposals_registration")
    apply_command(session, election_id=election_id, caller=ADMIN, command="start_voting_session")
    return election_id


def test_create_election_persists_initial_state(db_session: Session) -> None:
    election = create_election(db_session, administrator=ADMIN)

    stored = db_session.get(Election, election.id)
    assert stored is not None
    assert stored.administrator == ADMIN
    assert stored.status == WorkflowStatus.REGISTERING_VOTERS
    assert stored.winning_proposal_id == 0
    assert stored.restrict_whitelist is False


def test_create_election_honours_whitelist_restriction(db_session: Session) -> None:
    election = create_election(db_session, administrator=ADMIN, restrict_whitelist_to_registration=True)
    apply_command(db_session, election_id=election.id, caller=ADMIN, command="start_proposals_registration")

    with pytest.raises(WorkflowViolationError):
        apply_command(db_session, election_id=election.id, caller=ADMIN, command="add_to_whitelist", identity=BOB)


def test_commands_persist_ledger_state(db_session: Session) -> None:
    election_id = _open_voting(db_session)

    result = apply_command(db_session, election_id=election_id, caller=BOB, command="register_vote", proposal_id=1)

    assert result.events == (Voted(voter=BOB, proposal_id=1),)
    ledger = load_ledger(db_session, election_id=election_id)
    assert ledger.get_workflow() is WorkflowStatus.VOTING_SESSION_STARTED
    assert ledger.get_addresses() == [ALICE, BOB]
    assert ledger.get_voter(BOB).has_voted is True
    assert ledger.get_voter(BOB).voted_proposal_id == 1
    assert [proposal.description for proposal in ledger.get_proposals()] == [
        "more coffee breaks",
        "longer nap times",
    ]
    assert [proposal.vote_count for proposal in ledger.get_proposals()] == [0, 1]
    assert ledger.get_winning_proposal_id() == 1

    voter_rows = db_session.scalars(
        select(ElectionVoter).where(ElectionVoter.election_id == election_id).order_by(ElectionVoter.whitelist_position)
    ).all()
    assert [row.identity for row in voter_rows] == [ALICE, BOB]
    proposal_rows = db_session.scalars(
        select(ElectionProposal).where(ElectionProposal.election_id == election_id)
    ).all()
    assert sorted(row.position for row in proposal_rows) == [0, 1]


def test_rejected_command_persists_nothing(db_session: Session) -> None:
    election_id = _open_voting(db_session)
    apply_command(db_session, election_id=election_id, caller=ALICE, command="register_vote", proposal_id=0)
    events_before = len(list_events(db_session, election_id=election_id))

    with pytest.raises(AlreadyVotedError):
        apply_command(db_session, election_id=election_id, caller=ALICE, command="register_vote", proposal_id=1)
    with pytest.raises(InvalidProposalError):
        apply_command(db_session, election_id=election_id, caller=BOB, command="register_vote", proposal_id=7)
    with pytest.raises(NotAuthorizedError):
        apply_command(db_session, election_id=election_id, caller=BOB, command="tally_votes")

    ledger = load_ledger(db_session, election_id=election_id)
    assert [proposal.vote_count for proposal in ledger.get_proposals()] == [1, 0]
    assert ledger.get_voter(BOB).has_voted is False
    assert len(list_events(db_session, election_id=election_id)) == events_before


def test_event_history_is_sequenced(db_session: Session) -> None:
    election_id = _open_voting(db_session)
    apply_command(db_session, election_id=election_id, caller=ALICE, command="register_vote", proposal_id=0)
    apply_command(db_session, election_id=election_id, caller=ADMIN, command="end_voting_session")
    apply_command(db_session, election_id=election_id, caller=ADMIN, command="tally_votes")

    records = list_events(db_session, election_id=election_id)

    assert [record.sequence for record in records] == list(range(len(records)))
    assert [record.event_type for record in records][:2] == ["VoterRegistered", "VoterRegistered"]
    assert records[-1].event_type == "VotesTallied"
    assert records[-2].event_type == "WorkflowStatusChange"
    assert records[-2].payload == {"previous_status": 4, "new_status": 5}
    voted = next(record for record in records if record.event_type == "Voted")
    assert voted.payload == {"voter": ALICE, "proposal_id": 0}
    assert voted.caller == ALICE


def test_elections_are_independent(db_session: Session) -> None:
    first = create_election(db_session, administrator=ADMIN).id
    second = create_election(db_session, administrator=BOB).id

    apply_command(db_session, election_id=first, caller=ADMIN, command="add_to_whitelist", identity=ALICE)
    apply_command(db_session, election_id=second, caller=BOB, command="start_proposals_registration")

    with pytest.raises(NotAuthorizedError):
        apply_command(db_session, election_id=second, caller=ADMIN, command="end_proposals_registration")
    assert load_ledger(db_session, election_id=first).get_workflow() is WorkflowStatus.REGISTERING_VOTERS
    assert load_ledger(db_session, election_id=second).get_addresses() == []


def test_unknown_election_is_rejected(db_session: Session) -> None:
    with pytest.raises(ElectionNotFoundError):
        apply_command(db_session, election_id="missing", caller=ADMIN, command="tally_votes")
    with pytest.raises(ElectionNotFoundError):
        load_ledger(db_session, election_id="missing")
    with pytest.raises(ElectionNotFoundError):
        list_events(db_session, election_id="missing")


def test_unknown_command_is_rejected(db_session: Session) -> None:
    election_id = create_election(db_session, administrator=ADMIN).id

    with pytest.raises(ValueError):
        apply_command(db_session, election_id=election_id, caller=ADMIN, command="restore")  # type: ignore[arg-type]


def test_commands_run_in_serializable_transactions(db_session: Session, monkeypatch) -> None:
    election_id = create_election(db_session, administrator=ADMIN).id
    statements: list[str] = []

    original_execute = Session.execute

    def tracking_execute(self: Session, statement, *args, **kwargs):
        if isinstance(statement, TextClause):
            statements.append(str(statement))
        return original_execute(self, statement, *args, **kwargs)

    monkeypatch.setattr(Session, "execute", tracking_execute)

    apply_command(db_session, election_id=election_id, caller=ADMIN, command="add_to_whitelist", identity=ALICE)

    assert any("BEGIN IMMEDIATE" in statement for statement in statements)


def test_events_and_rejections_are_logged(db_session: Session, caplog: pytest.LogCaptureFixture) -> None:
    election_id = create_election(db_session, administrator=ADMIN).id

    with caplog.at_level(logging.INFO, logger="election_ledger.services.elections"):
        apply_command(db_session, election_id=election_id, caller=ADMIN, command="add_to_whitelist", identity=ALICE)
        with pytest.raises(NotAuthorizedError):
            apply_command(db_session, election_id=election_id, caller=ALICE, command="tally_votes")

    event_records = [record for record in caplog.records if getattr(record, "event_type", None) == "VoterRegistered"]
    assert event_records and event_records[0].election_id == election_id
    rejected = [record for record in caplog.records if getattr(record, "error", None) == "NotAuthorizedError"]
    assert rejected and rejected[0].command == "tally_votes"


def test_isolation_is_set_before_any_query_after_create(db_session: Session, monkeypatch) -> None:
    election = create_election(db_session, administrator=ADMIN)
    open_transactions: list[bool] = []

    original_execute = Session.execute

    def tracking_execute(self: Session, statement, *args, **kwargs):
        if isinstance(statement, TextClause) and str(statement) in (
            "BEGIN IMMEDIATE",
            "SET TRANSACTION ISOLATION LEVEL SERIALIZABLE",
        ):
            open_transactions.append(self.in_transaction())
        return original_execute(self, statement, *args, **kwargs)

    monkeypatch.setattr(Session, "execute", tracking_execute)

    db_session.refresh(election)
    apply_command(db_session, election_id=election.id, caller=ADMIN, command="add_to_whitelist", identity=ALICE)
    apply_command(db_session, election_id=election.id, caller=ADMIN, command="start_proposals_registration")

    assert open_transactions == [False, False]
    assert load_ledger(db_session, election_id=election.id).get_addresses() == [ALICE]
