from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class AuthError(AppError):
    pass


class DecodeError(AppError):
    """Inbound frame is not a structured chat event."""


class StorageError(AppError):
    """The message store could not persist or read chat history."""


class TransportError(AppError):
    """A single connection's transport failed."""


class DeliveryError(TransportError):
    """Sending a frame to one recipient failed."""
