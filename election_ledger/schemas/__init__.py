"""Pydantic schemas for API payloads."""

from .election import (
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
