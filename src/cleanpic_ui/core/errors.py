"""
Error Taxonomy
==============

Every failure the workflow can surface to the user is one of these classes.
Gateway errors carry a machine-readable ``kind`` plus a user-facing message
and an optional detail string; the proxy serialises them as
``{"error": message, "details": detail, "code": kind}``.

Classes
-------
CleanPicError
    Base class for all application errors
InvalidInput
    Missing, empty, oversized, or non-image upload
NotReady
    Action attempted in a phase that does not allow it
GatewayError
    Base class for inference failures
GatewayTimeout
    Remote round trip exceeded the configured ceiling
EmptyResult
    Remote call succeeded but returned no usable image reference
UpstreamError
    Transport or backend failure
"""


class CleanPicError(Exception):
    """Base class for application errors."""

    kind = "error"

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self):
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class InvalidInput(CleanPicError):
    kind = "invalid_input"


class NotReady(CleanPicError):
    kind = "not_ready"


class GatewayError(CleanPicError):
    kind = "upstream"


class GatewayTimeout(GatewayError):
    kind = "timeout"


class EmptyResult(GatewayError):
    kind = "empty_result"


class UpstreamError(GatewayError):
    kind = "upstream"


GATEWAY_ERRORS = {
    cls.kind: cls for cls in (InvalidInput, GatewayTimeout, EmptyResult, UpstreamError)
}


def gateway_error_for(kind: str | None, message: str, detail: str | None = None):
    """
    Build the gateway error matching a serialised ``code``.

    Unknown or missing codes map to :class:`UpstreamError`.
    """
    cls = GATEWAY_ERRORS.get(kind or "", UpstreamError)
    return cls(message, detail)
