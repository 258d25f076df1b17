"""Ledger access, list reading, event history assembly and the pool service."""
