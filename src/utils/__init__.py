"""Logging and validation helpers shared across packages."""
