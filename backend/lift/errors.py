from typing import Iterable, Optional


class LiftError(Exception):
    """Base class for errors that map onto an HTTP status and a user-facing message."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(LiftError):
    status_code = 400

    @classmethod
    def missing_fields(cls, fields: Iterable[str], hint: str = "") -> "ValidationError":
        names = ", ".join(fields)
        message = f"Missing required field(s): {names}."
        if hint:
            message = f"{message} {hint}"
        return cls(message)


class UnsupportedFileTypeError(LiftError):
    status_code = 400


class ExtractionError(LiftError):
    status_code = 400


class UpstreamError(LiftError):
    """The completion service failed, timed out or returned nothing."""

    status_code = 500


class AuthenticationError(UpstreamError):
    pass


class MalformedModelOutput(LiftError):
    """Model output could not be parsed into the expected shape."""

    status_code = 500
