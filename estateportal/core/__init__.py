"""Core module for the estateportal application."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
