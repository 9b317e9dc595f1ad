"""Ledger store, layout and reconciliation."""
