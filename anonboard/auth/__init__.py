"""Accounts, roles, sessions, and role-based access checks."""
