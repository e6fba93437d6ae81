"""Synchronization and retrieval components for :mod:`govindex`."""
