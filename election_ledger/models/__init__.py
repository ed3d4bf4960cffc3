"""ORM models package."""
from .base import Base, TimestampMixin
from .election import Election, ElectionProposal, ElectionVoter
from .ledger_event import LedgerEventRecord

__all__ = [
    "Base",
    "Election",
    "ElectionProposal",
    "ElectionVoter",
    "LedgerEventRecord",
    "TimestampMixin",
]
