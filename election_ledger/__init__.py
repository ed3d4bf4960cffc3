"""Single-authority election ledger service."""
