"""Domain errors raised by the services and mapped to HTTP responses in main."""

from __future__ import annotations


class LibraryError(Exception):
    status_code = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LibraryError):
    status_code = 400


class Forbidden(LibraryError):
    status_code = 403


class NotFound(LibraryError):
    status_code = 404


class Conflict(LibraryError):
    status_code = 409
