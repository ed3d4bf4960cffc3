"""Schemas for election ledger endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from election_ledger.services.events import LedgerEvent
from election_ledger.services.ledger import ElectionLedger, Proposal, Voter
from election_ledger.services.workflow import WorkflowStatus


class ElectionCreate(BaseModel):
    restrict_whitelist_to_registration: bool | None = None


class WhitelistRequest(BaseModel):
    identity: str = Field(..., min_length=1, max_length=128)


class ProposalCreate(BaseModel):
    description: str


class VoteCreate(BaseModel):
    proposal_id: int


class WorkflowRead(BaseModel):
    status: int
    label: str

    @classmethod
    def from_status(cls, status: WorkflowStatus) -> "WorkflowRead":
        return cls(status=int(status), label=status.label)


class VoterRead(BaseModel):
    identity: str
    is_registered: bool
    has_voted: bool
    voted_proposal_id: int

    @classmethod
    def from_voter(cls, identity: str, voter: Voter) -> "VoterRead":
        return cls(
            identity=identity,
            is_registered=voter.is_registered,
            has_voted=voter.has_voted,
            voted_proposal_id=voter.voted_proposal_id,
        )


class ProposalRead(BaseModel):
    proposal_id: int
    description: str
    vote_count: int

    @classmethod
    def from_proposal(cls, proposal_id: int, proposal: Proposal) -> "ProposalRead":
        return cls(proposal_id=proposal_id, description=proposal.description, vote_count=proposal.vote_count)


class WinningProposalRead(BaseModel):
    winning_proposal_id: int
    final: bool


class EventRead(BaseModel):
    event_type: str
    payload: dict[str, Any]

    @classmethod
    def from_event(cls, event: LedgerEvent) -> "EventRead":
        return cls(event_type=event.event_type, payload=event.payload())


class StoredEventRead(EventRead):
    model_config = ConfigDict(from_attributes=True)

    sequence: int
    caller: str | None
    created_at: datetime


class CommandResponse(BaseModel):
    election_id: str
    workflow: WorkflowRead
    events: list[EventRead]


class ElectionRead(BaseModel):
    id: str
    administrator: str
    workflow: WorkflowRead
    restrict_whitelist_to_registration: bool
    addresses: list[str]
    proposals: list[ProposalRead]
    winning_proposal_id: int

    @classmethod
    def from_ledger(cls, election_id: str, ledger: ElectionLedger) -> "ElectionRead":
        return cls(
            id=election_id,
            administrator=ledger.administrator,
            workflow=WorkflowRead.from_status(ledger.get_workflow()),
            restrict_whitelist_to_registration=ledger.restrict_whitelist_to_registration,
            addresses=ledger.get_addresses(),
            proposals=[
                ProposalRead.from_proposal(index, proposal)
                for index, proposal in enumerate(ledger.get_proposals())
            ],
            winning_proposal_id=ledger.get_winning_proposal_id(),
        )


__all__ = [
    "CommandResponse",
    "ElectionCreate",
    "ElectionRead",
    "EventRead",
    "ProposalCreate",
    "ProposalRead",
    "StoredEventRead",
    "VoteCreate",
    "VoterRead",
    "WhitelistRequest",
    "WinningProposalRead",
    "WorkflowRead",
]
