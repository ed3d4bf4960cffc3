"""Election ledger endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from election_ledger.api.deps import get_db_session
from election_ledger.api.routes.auth import AuthenticatedCaller, get_current_caller
from election_ledger.schemas.election import (
    CommandResponse,
    ElectionCreate,
    ElectionRead,
    EventRead,
    ProposalCreate,
    ProposalRead,
    StoredEventRead,
    VoteCreate,
    VoterRead,
    WhitelistRequest,
    WinningProposalRead,
    WorkflowRead,
)
from election_ledger.services.elections import (
    ElectionNotFoundError,
    LedgerCommand,
    apply_command,
    create_election,
    list_events,
    load_ledger,
)
from election_ledger.services.ledger import (
    AlreadyVotedError,
    AlreadyWhitelistedError,
    ElectionLedger,
    InvalidProposalError,
    LedgerError,
    NotAuthorizedError,
    WorkflowViolationError,
)

router = APIRouter(prefix="/elections")

_ERROR_STATUS: dict[type[LedgerError], int] = {
    ElectionNotFoundError: status.HTTP_404_NOT_FOUND,
    NotAuthorizedError: status.HTTP_403_FORBIDDEN,
    WorkflowViolationError: status.HTTP_409_CONFLICT,
    AlreadyWhitelistedError: status.HTTP_409_CONFLICT,
    AlreadyVotedError: status.HTTP_409_CONFLICT,
    InvalidProposalError: 422,
}


def _http_error(exc: LedgerError) -> HTTPException:
    status_code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=str(exc))


def _load(session: Session, election_id: str) -> ElectionLedger:
    try:
        return load_ledger(session, election_id=election_id)
    except ElectionNotFoundError as exc:
        raise _http_error(exc) from exc


def _run(
    session: Session,
    *,
    election_id: str,
    caller: AuthenticatedCaller,
    command: LedgerCommand,
    **arguments: Any,
) -> CommandResponse:
    try:
        result = apply_command(
            session,
            election_id=election_id,
            caller=caller.identity,
            command=command,
            **arguments,
        )
    except LedgerError as exc:
        raise _http_error(exc) from exc
    return CommandResponse(
        election_id=result.election_id,
        workflow=WorkflowRead.from_status(result.ledger.get_workflow()),
        events=[EventRead.from_event(event) for event in result.events],
    )


@router.post("", response_model=ElectionRead, status_code=status.HTTP_201_CREATED)
def open_election(
    payload: ElectionCreate | None = None,
    session: Session = Depends(get_db_session),
    caller: AuthenticatedCaller = Depends(get_current_caller),
) -> ElectionRead:
    payload = payload or ElectionCreate()
    election = create_election(
        session,
        administrator=caller.identity,
        restrict_whitelist_to_registration=payload.restrict_whitelist_to_registration,
    )
    return ElectionRead.from_ledger(election.id, _load(session, election.id))


@router.get("/{election_id}", response_model=ElectionRead)
def get_election(election_id: str, session: Session = Depends(get_db_session)) -> ElectionRead:
    return ElectionRead.from_ledger(election_id, _load(session, election_id))


@router.post("/{election_id}/whitelist", response_model=CommandResponse)
def add_to_whitelist(
    election_id: str,
    payload: WhitelistRequest,
    session: Session = Depends(get_db_session),
    caller: AuthenticatedCaller = Depends(get_current_caller),
) -> CommandResponse:
    return _run(
        session, election_id=election_id, caller=caller, command="add_to_whitelist", identity=payload.identity
    )


@router.post("/{election_id}/proposals-registration/start", response_model=CommandResponse)
def start_proposals_registration(
    election_id: str,
    session: Session = Depends(get_db_session),
    caller: AuthenticatedCaller = Depends(get_current_caller),
) -> CommandResponse:
    return _run(session, election_id=election_id, caller=caller, command="start_proposals_registration")


@router.post("/{election_id}/proposals-registration/end", response_model=CommandResponse)
def end_proposals_registration(
    election_id: str,
    session: Session = Depends(get_db_session),
    caller: AuthenticatedCaller = Depends(get_current_caller),
) -> CommandResponse:
    return _run(session, election_id=election_id, caller=caller, command="end_proposals_registration")


@router.post("/{election_id}/voting-session/start", response_model=CommandResponse)
def start_voting_session(
    election_id: str,
    session: Session = Depends(get_db_session),
    caller: AuthenticatedCaller = Depends(get_current_caller),
) -> CommandResponse:
    return _run(session, election_id=election_id, caller=caller, command="start_voting_session")


@router.post("/{election_id}/voting-session/end", response_model=CommandResponse)
def end_voting_session(
    election_id: str,
    session: Session = Depends(get_db_session),
    caller: AuthenticatedCaller = Depends(get_current_caller),
) -> CommandResponse:
    return _run(session, election_id=election_id, caller=caller, command="end_voting_session")


@router.post("/{election_id}/tally", response_model=CommandResponse)
def tally_votes(
    election_id: str,
    session: Session = Depends(get_db_session),
    caller: AuthenticatedCaller = Depends(get_current_caller),
) -> CommandResponse:
    return _run(session, election_id=election_id, caller=caller, command="tally_votes")


@router.post("/{election_id}/proposals", response_model=CommandResponse, status_code=status.HTTP_201_CREATED)
def register_proposal(
    election_id: str,
    payload: ProposalCreate,
    session: Session = Depends(get_db_session),
    caller: AuthenticatedCaller = Depends(get_current_caller),
) -> CommandResponse:
    return _run(
        session,
        election_id=election_id,
        caller=caller,
        command="register_proposal",
        description=payload.description,
    )


@router.post("/{election_id}/votes", response_model=CommandResponse, status_code=status.HTTP_201_CREATED)
def register_vote(
    election_id: str,
    payload: VoteCreate,
    session: Session = Depends(get_db_session),
    caller: AuthenticatedCaller = Depends(get_current_caller),
) -> CommandResponse:
    return _run(
        session,
        election_id=election_id,
        caller=caller,
        command="register_vote",
        proposal_id=payload.proposal_id,
    )


@router.get("/{election_id}/workflow", response_model=WorkflowRead)
def get_workflow(election_id: str, session: Session = Depends(get_db_session)) -> WorkflowRead:
    return WorkflowRead.from_status(_load(session, election_id).get_workflow())


@router.get("/{election_id}/addresses", response_model=list[str])
def get_addresses(election_id: str, session: Session = Depends(get_db_session)) -> list[str]:
    return _load(session, election_id).get_addresses()


@router.get("/{election_id}/voters/{identity}", response_model=VoterRead)
def get_voter(election_id: str, identity: str, session: Session = Depends(get_db_session)) -> VoterRead:
    return VoterRead.from_voter(identity, _load(session, election_id).get_voter(identity))


@router.get("/{election_id}/proposals", response_model=list[ProposalRead])
def get_proposals(election_id: str, session: Session = Depends(get_db_session)) -> list[ProposalRead]:
    proposals = _load(session, election_id).get_proposals()
    return [ProposalRead.from_proposal(index, proposal) for index, proposal in enumerate(proposals)]


@router.get("/{election_id}/winning-proposal", response_model=WinningProposalRead)
def get_winning_proposal(
    election_id: str, session: Session = Depends(get_db_session)
) -> WinningProposalRead:
    ledger = _load(session, election_id)
    return WinningProposalRead(
        winning_proposal_id=ledger.get_winning_proposal_id(),
        final=ledger.get_workflow().is_terminal,
    )


@router.get("/{election_id}/events", response_model=list[StoredEventRead])
def get_events(election_id: str, session: Session = Depends(get_db_session)) -> list[StoredEventRead]:
    try:
        records = list_events(session, election_id=election_id)
    except ElectionNotFoundError as exc:
        raise _http_error(exc) from exc
    return [StoredEventRead.model_validate(record) for record in records]


__all__ = ["router"]
