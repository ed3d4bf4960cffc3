"""Workflow phases of an election."""
from __future__ import annotations

import enum


class WorkflowStatus(enum.IntEnum):
    """Ordered election phases; an election only ever moves one step forward."""

    REGISTERING_VOTERS = 0
    PROPOSALS_REGISTRATION_STARTED = 1
    PROPOSALS_REGISTRATION_ENDED = 2
    VOTING_SESSION_STARTED = 3
    VOTING_SESSION_ENDED = 4
    VOTES_TALLIED = 5

    @property
    def label(self) -> str:
        return "".join(part.capitalize() for part in self.name.split("_"))

    @property
    def is_terminal(self) -> bool:
        return self is WorkflowStatus.VOTES_TALLIED


__all__ = ["WorkflowStatus"]
