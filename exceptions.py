class ATSError(Exception):
    """Base class for errors raised by the ATS scoring service."""


class InvalidInputError(ATSError):
    """Raised when a resume value does not have the basic resume shape.

    This signals an upstream contract violation (the caller handed the
    engine something that is not a resume at all), so it is logged and
    surfaced as an internal error rather than a user-facing one.
    """


class PayloadValidationError(ATSError):
    """Raised when a request payload is missing required input."""
