from __future__ import annotations

from typing import Optional


class DomainActionError(Exception):
    """Raised when a business rule blocks the requested action."""

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class ConcurrencyError(DomainActionError):
    """Raised when the submitted ``_version`` no longer matches the stored row."""

    DEFAULT_MESSAGE = (
        "El registro ha sido modificado por otro usuario. "
        "Por favor, recarga la página e intenta nuevamente."
    )

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.DEFAULT_MESSAGE, field="_version")


class BulkActionError(Exception):
    """Raised when a bulk action payload is invalid."""
