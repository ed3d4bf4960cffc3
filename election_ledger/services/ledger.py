"""In-memory election ledger enforcing the voting workflow.

The ledger owns the whitelist, the proposals and every voter's ballot
state. Commands validate the caller, the workflow phase and then the
command's own arguments, in that order, before touching any state, so a
rejected command never leaves a partial update behind. Successful commands
return the events they produced.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from threading import Lock

from election_ledger.services.events import (
    LedgerEvent,
    ProposalRegistered,
    ProposalsRegistrationEnded,
    ProposalsRegistrationStarted,
    Voted,
    VoterRegistered,
    VotesTallied,
    VotingSessionEnded,
    VotingSessionStarted,
    WorkflowStatusChange,
)
from election_ledger.services.workflow import WorkflowStatus


class LedgerError(RuntimeError):
    """Base exception for rejected ledger commands."""


class NotAuthorizedError(LedgerError):
    """Raised when the caller is not the administrator or not whitelisted."""


class WorkflowViolationError(LedgerError):
    """Raised when a command is issued outside of its workflow phase."""


class AlreadyWhitelistedError(LedgerError):
    """Raised when an identity is whitelisted twice."""


class AlreadyVotedError(LedgerError):
    """Raised when a voter attempts a second vote."""


class InvalidProposalError(LedgerError):
    """Raised when a vote references a proposal index that does not exist."""


@dataclass(slots=True)
class Voter:
    is_registered: bool = False
    has_voted: bool = False
    voted_proposal_id: int = 0


@dataclass(slots=True)
class Proposal:
    description: str
    vote_count: int = 0


class ElectionLedger:
    """A single election run by one administrator identity."""

    def __init__(self, administrator: str, *, restrict_whitelist_to_registration: bool = False) -> None:
        if not administrator:
            raise ValueError("An administrator identity is required")
        self._administrator = administrator
        self._restrict_whitelist = restrict_whitelist_to_registration
        self._status = WorkflowStatus.REGISTERING_VOTERS
        self._voters: dict[str, Voter] = {}
        self._whitelist: list[str] = []
        self._proposals: list[Proposal] = []
        self._winning_proposal_id = 0
        self._lock = Lock()

    @classmethod
    def restore(
        cls,
        *,
        administrator: str,
        status: WorkflowStatus | int,
        voters: Iterable[tuple[str, Voter]],
        proposals: Iterable[Proposal],
        winning_proposal_id: int = 0,
        restrict_whitelist_to_registration: bool = False,
    ) -> ElectionLedger:
        """Rebuild a ledger from stored state; ``voters`` must be in whitelist order."""

        ledger = cls(administrator, restrict_whitelist_to_registration=restrict_whitelist_to_registration)
        ledger._status = WorkflowStatus(status)
        for identity, voter in voters:
            if identity in ledger._voters:
                raise ValueError(f"Voter '{identity}' appears twice in the whitelist")
            ledger._voters[identity] = replace(voter, is_registered=True)
            ledger._whitelist.append(identity)
        ledger._proposals = [replace(proposal) for proposal in proposals]

        if ledger._proposals and not 0 <= winning_proposal_id < len(ledger._proposals):
            raise ValueError(f"Winning proposal {winning_proposal_id} is out of range")
        ledger._winning_proposal_id = winning_proposal_id if ledger._proposals else 0

        for identity, voter in ledger._voters.items():
            if voter.has_voted and not 0 <= voter.voted_proposal_id < len(ledger._proposals):
                raise ValueError(f"Voter '{identity}' holds a ballot for unknown proposal {voter.voted_proposal_id}")

        ballots = sum(1 for voter in ledger._voters.values() if voter.has_voted)
        if ballots != sum(proposal.vote_count for proposal in ledger._proposals):
            raise ValueError("Stored vote counts do not match the number of ballots cast")
        return ledger

    @property
    def administrator(self) -> str:
        return self._administrator

    @property
    def restrict_whitelist_to_registration(self) -> bool:
        return self._restrict_whitelist

    @property
    def status(self) -> WorkflowStatus:
        return self._status

    def add_to_whitelist(self, caller: str, identity: str) -> list[LedgerEvent]:
        with self._lock:
            self._require_administrator(caller)
            if self._restrict_whitelist:
                self._require_status(WorkflowStatus.REGISTERING_VOTERS)
            if identity in self._voters:
                raise AlreadyWhitelistedError("Address already whitelisted")

            self._voters[identity] = Voter(is_registered=True)
            self._whitelist.append(identity)
            return [VoterRegistered(voter_address=identity)]

    def start_proposals_registration(self, caller: str) -> list[LedgerEvent]:
        return self._advance(caller, WorkflowStatus.REGISTERING_VOTERS, ProposalsRegistrationStarted())

    def end_proposals_registration(self, caller: str) -> list[LedgerEvent]:
        return self._advance(caller, WorkflowStatus.PROPOSALS_REGISTRATION_STARTED, ProposalsRegistrationEnded())

    def start_voting_session(self, caller: str) -> list[LedgerEvent]:
        return self._advance(caller, WorkflowStatus.PROPOSALS_REGISTRATION_ENDED, VotingSessionStarted())

    def end_voting_session(self, caller: str) -> list[LedgerEvent]:
        return self._advance(caller, WorkflowStatus.VOTING_SESSION_STARTED, VotingSessionEnded())

    def tally_votes(self, caller: str) -> list[LedgerEvent]:
        # The winner is maintained on every vote; tallying only closes the election.
        return self._advance(caller, WorkflowStatus.VOTING_SESSION_ENDED, VotesTallied())

    def register_proposal(self, caller: str, description: str) -> list[LedgerEvent]:
        with self._lock:
            self._require_registered(caller)
            self._require_status(WorkflowStatus.PROPOSALS_REGISTRATION_STARTED)

            self._proposals.append(Proposal(description=description))
            return [ProposalRegistered(proposal_id=len(self._proposals) - 1)]

    def register_vote(self, caller: str, proposal_id: int) -> list[LedgerEvent]:
        with self._lock:
            voter = self._require_registered(caller)
            self._require_status(WorkflowStatus.VOTING_SESSION_STARTED)
            if voter.has_voted:
                raise AlreadyVotedError("Address has already voted")
            if not 0 <= proposal_id < len(self._proposals):
                raise InvalidProposalError(f"Proposal {proposal_id} does not exist")

            voter.has_voted = True
            voter.voted_proposal_id = proposal_id
            proposal = self._proposals[proposal_id]
            proposal.vote_count += 1
            if proposal.vote_count > self._proposals[self._winning_proposal_id].vote_count:
                self._winning_proposal_id = proposal_id
            return [Voted(voter=caller, proposal_id=proposal_id)]

    def get_workflow(self) -> WorkflowStatus:
        return self._status

    def get_addresses(self) -> list[str]:
        with self._lock:
            return list(self._whitelist)

    def get_voter(self, identity: str) -> Voter:
        """Return a copy of the voter record; unknown identities read as a blank record."""
        with self._lock:
            voter = self._voters.get(identity)
            return replace(voter) if voter is not None else Voter()

    def get_voters(self) -> list[tuple[str, Voter]]:
        with self._lock:
            return [(identity, replace(self._voters[identity])) for identity in self._whitelist]

    def get_proposals(self) -> list[Proposal]:
        with self._lock:
            return [replace(proposal) for proposal in self._proposals]

    def get_winning_proposal_id(self) -> int:
        return self._winning_proposal_id

    def _advance(self, caller: str, expected: WorkflowStatus, phase_event: LedgerEvent) -> list[LedgerEvent]:
        with self._lock:
            self._require_administrator(caller)
            self._require_status(expected)

            previous = self._status
            self._status = WorkflowStatus(previous + 1)
            return [WorkflowStatusChange(previous_status=previous, new_status=self._status), phase_event]

    def _require_administrator(self, caller: str) -> None:
        if caller != self._administrator:
            raise NotAuthorizedError("Caller is not the administrator")

    def _require_registered(self, caller: str) -> Voter:
        voter = self._voters.get(caller)
        if voter is None or not voter.is_registered:
            raise NotAuthorizedError("Address not whitelisted")
        return voter

    def _require_status(self, expected: WorkflowStatus) -> None:
        if self._status != expected:
            raise WorkflowViolationError(
                f"Workflow not respected: expected {expected.label}, current status is {self._status.label}"
            )


__all__ = [
    "AlreadyVotedError",
    "AlreadyWhitelistedError",
    "ElectionLedger",
    "InvalidProposalError",
    "LedgerError",
    "NotAuthorizedError",
    "Proposal",
    "Voter",
    "WorkflowViolationError",
]
