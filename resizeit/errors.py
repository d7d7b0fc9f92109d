"""
Exception hierarchy shared by the Qt-free modules.

The window catches these and turns them into dialogs or status-bar
messages; nothing here is fatal to the application.
"""


class ResizeItError(Exception):
    """Base class for all application errors."""


class ValidationError(ResizeItError):
    """The request cannot be built (no source file, no outputs)."""


class OutputIndexError(ResizeItError, IndexError):
    """An output index is outside the current output set."""

    def __init__(self, index: int, length: int):
        super().__init__(f"output index {index} out of range for {length} output(s)")
        self.index = index
        self.length = length


class TransportError(ResizeItError):
    """The resize service could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ImageLoadError(ResizeItError):
    """A source file could not be opened or decoded."""
