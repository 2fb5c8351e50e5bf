"""Relational results store."""

from capdriver.store.database import ResultsDatabase

__all__ = ["ResultsDatabase"]
