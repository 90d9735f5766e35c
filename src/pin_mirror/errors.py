"""Error hierarchy for pin_mirror.

Errors fall into three groups that the sync engine treats differently:

- ``ScanError`` and listing failures abort a whole pass.
- ``RemoteError`` subclasses raised by a single upload/delete and
  ``GroupResolutionError`` / ``SidecarError`` only fail that item.
- ``RateLimitExceeded`` is what a 429 turns into once the transport's
  retry budget is spent.

Configuration problems are reported as plain ``ValueError`` at startup.
"""

from __future__ import annotations


class PinMirrorError(Exception):
    """Base class for all pin_mirror errors.

    Args:
        message: Human-readable error description.
        path: The local path involved in the error, if any.
    """

    def __init__(self, message: str = "", *, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.path is not None:
            return f"{base} | path={self.path!r}"
        return base


class ScanError(PinMirrorError):
    """Raised when the local inventory cannot be built."""


class SidecarError(PinMirrorError):
    """Raised when a ``.meta`` sidecar file cannot be parsed."""


class GroupResolutionError(PinMirrorError):
    """Raised when a remote group can neither be found nor created.

    Args:
        group_name: Name of the group that failed to resolve.
    """

    def __init__(self, message: str = "", *, group_name: str = "") -> None:
        self.group_name = group_name
        super().__init__(message)


class RemoteError(PinMirrorError):
    """Raised when the pinning API answers with an error.

    Args:
        status_code: HTTP status code of the failed response, if any.
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, path=path)

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"{base} | status={self.status_code}"
        return base


class RateLimitExceeded(RemoteError):
    """Raised when 429 responses outlast the retry policy."""


class MalformedResponse(RemoteError):
    """Raised when a response body does not match its expected schema."""
