"""Taste profiles built from watch history and content DNA."""

from streamsense.services.taste.builder import TasteProfileBuilder
from streamsense.services.taste.manager import ProfileState, TasteProfileManager

__all__ = ["ProfileState", "TasteProfileBuilder", "TasteProfileManager"]
