"""Shared record types and helpers for tablemap tests."""
