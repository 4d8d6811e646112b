from __future__ import annotations


class PerspectivologyError(Exception):
    """Base error carrying a message safe to return to API callers."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingField(PerspectivologyError):
    """A required request field was absent or empty."""


class ModelCallFailed(PerspectivologyError):
    """The language model call raised a transport or provider error."""


class ResponseParseFailed(PerspectivologyError):
    """The model reply was not JSON of the shape the phase expects."""


class DirectoryFetchFailed(PerspectivologyError):
    """The expert spreadsheet could not be downloaded.

    Never reaches API callers: the directory logs it and keeps serving its
    previous snapshot.
    """
