"""Language utilities for NineCut.

Every storyboard angle carries its prompt in two variants: English (the one
sent to the image model) and Korean (for the reader). This module keeps the
choice of which variant to show in the domain layer so CLI and exporters share
a single source of truth.
"""

from __future__ import annotations

from enum import Enum


class Language(str, Enum):
    """Prompt variants available on a storyboard angle."""

    ENGLISH = "en"
    KOREAN = "ko"

    @classmethod
    def from_bool(cls, korean: bool) -> "Language":
        """Derive a language value from a boolean flag (the "translate" toggle)."""

        return cls.KOREAN if korean else cls.ENGLISH

    def label(self) -> str:
        return "Korean" if self is Language.KOREAN else "English"
