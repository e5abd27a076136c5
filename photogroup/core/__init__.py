"""Core module for the photogroup application."""

from .types import FirestoreDocument, Result

__all__ = ["FirestoreDocument", "Result"]
