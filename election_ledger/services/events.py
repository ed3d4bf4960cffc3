"""Domain events produced by election ledger commands."""
from __future__ import annotations

import enum
from dataclasses import dataclass, fields
from typing import Any, ClassVar

from election_ledger.services.workflow import WorkflowStatus


@dataclass(frozen=True, slots=True)
class LedgerEvent:
    """Base class for events returned by successful ledger commands."""

    event_type: ClassVar[str] = "LedgerEvent"

    def payload(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for field in fields(self):
            value = getattr(self, field.name)
            data[field.name] = value.value if isinstance(value, enum.Enum) else value
        return data


@dataclass(frozen=True, slots=True)
class VoterRegistered(LedgerEvent):
    event_type: ClassVar[str] = "VoterRegistered"

    voter_address: str


@dataclass(frozen=True, slots=True)
class WorkflowStatusChange(LedgerEvent):
    event_type: ClassVar[str] = "WorkflowStatusChange"

    previous_status: WorkflowStatus
    new_status: WorkflowStatus


@dataclass(frozen=True, slots=True)
class ProposalsRegistrationStarted(LedgerEvent):
    event_type: ClassVar[str] = "ProposalsRegistrationStarted"


@dataclass(frozen=True, slots=True)
class ProposalsRegistrationEnded(LedgerEvent):
    event_type: ClassVar[str] = "ProposalsRegistrationEnded"


@dataclass(frozen=True, slots=True)
class VotingSessionStarted(LedgerEvent):
    event_type: ClassVar[str] = "VotingSessionStarted"


@dataclass(frozen=True, slots=True)
class VotingSessionEnded(LedgerEvent):
    event_type: ClassVar[str] = "VotingSessionEnded"


@dataclass(frozen=True, slots=True)
class ProposalRegistered(LedgerEvent):
    event_type: ClassVar[str] = "ProposalRegistered"

    proposal_id: int


@dataclass(frozen=True, slots=True)
class Voted(LedgerEvent):
    event_type: ClassVar[str] = "Voted"

    voter: str
    proposal_id: int


@dataclass(frozen=True, slots=True)
class VotesTallied(LedgerEvent):
    event_type: ClassVar[str] = "VotesTallied"


__all__ = [
    "LedgerEvent",
    "ProposalRegistered",
    "ProposalsRegistrationEnded",
    "ProposalsRegistrationStarted",
    "Voted",
    "VoterRegistered",
    "VotesTallied",
    "VotingSessionEnded",
    "VotingSessionStarted",
    "WorkflowStatusChange",
]
