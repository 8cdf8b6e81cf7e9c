"""Shared helpers (logging, environment parsing)."""
