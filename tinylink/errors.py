"""
Error taxonomy for TinyLink.

Every failure raised by the manager or a storage backend is one of these kinds.
Callers (the HTTP layer, scripts, tests) switch on the class, never on the message.

    LinkError
      ├── InvalidInput   malformed destination URL or custom code (not retryable)
      ├── Conflict       code already taken
      ├── NotFound       no link with that code
      └── Unavailable    transient storage failure (safe to retry with backoff)
"""


class LinkError(Exception):
    """Base class for all TinyLink errors."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class InvalidInput(LinkError, ValueError):
    """Caller supplied a malformed URL or custom code."""


class Conflict(LinkError):
    """The short code is already in use."""


class NotFound(LinkError, LookupError):
    """No link exists for the requested code."""


class Unavailable(LinkError):
    """The storage backend timed out or could not be reached."""
