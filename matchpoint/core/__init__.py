"""Core module for the matchpoint application."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
