"""Contracts, errors, and pure shape arithmetic."""
