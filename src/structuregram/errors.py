"""Exceptions raised by the source and viewer layers.

Diagram construction and layout never raise these: malformed statements
become diagnostic leaves instead.
"""

from __future__ import annotations


class StructuregramError(Exception):
    """Base class for all structuregram errors."""


class UnsupportedLanguageError(StructuregramError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No dialect for {name!r}")
        self.name = name


class MethodNotFoundError(StructuregramError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No function or method named {name!r}")
        self.name = name


class StaleReferenceError(StructuregramError):
    """A source reference points at text that has changed since it was minted."""


class EditError(StructuregramError):
    """A replacement could not be parsed back into valid source.

    The document is left exactly as it was before the edit.
    """

    def __init__(self, text: str, reason: str) -> None:
        super().__init__(f"{reason}: {text!r}")
        self.text = text
        self.reason = reason
