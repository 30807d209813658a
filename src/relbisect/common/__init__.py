"""Shared helpers (logging, HTTP) used across relbisect modules."""
