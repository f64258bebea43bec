"""User-facing error types. All are recoverable by retrying with other input."""


class StudioError(Exception):
    """Base class for editor errors reported back to the user."""


class LoadError(StudioError):
    """A bitmap could not be fetched or decoded (network, HTTP, decode, timeout)."""


class ThumbnailUnavailable(LoadError):
    """Every thumbnail candidate for a video failed to load."""


class InvalidIdentifier(StudioError):
    """Input did not match any recognized video id or URL shape."""


class ExportError(StudioError):
    """The composite could not be encoded or written."""
