"""
Error taxonomy for the flashcard store.

Local reads never raise these upward; they degrade to "absent".
Remote failures stay inside the sync engine and never undo a local write.
"""


class FlashcardError(Exception):
    """Base class for every error raised by the store."""


class PersistError(FlashcardError):
    """The local write failed (disk full, unwritable path, locked database)."""


class TransportError(FlashcardError):
    """The remote store was unreachable or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DeserializeError(FlashcardError):
    """A persisted or imported blob could not be decoded into decks."""


class ValidationError(FlashcardError):
    """A caller supplied a value the store cannot accept."""
