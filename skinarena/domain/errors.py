"""Errors raised by the services and mapped to HTTP responses in main.py."""


class CasinoError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CasinoError):
    """Malformed input. Nothing was changed."""

    status_code = 400


class ConflictError(CasinoError):
    """The request clashes with the current state and may be retried later."""

    status_code = 409


class RateLimitError(ConflictError):
    status_code = 429


class ForbiddenError(CasinoError):
    status_code = 403


class NotFoundError(CasinoError):
    status_code = 404


class IntegrityError(CasinoError):
    """An invariant that should always hold did not. The operation is aborted."""

    status_code = 500
