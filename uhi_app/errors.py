"""Error taxonomy and user-facing notices."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Notice:
    """Short title + description shown to the user (a toast)."""

    title: str
    description: str
    variant: str = "default"

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


class UHIError(RuntimeError):
    """Base class for recoverable client errors."""

    title = "Error"

    def __init__(self, description: str, title: Optional[str] = None) -> None:
        super().__init__(description)
        self.description = description
        if title is not None:
            self.title = title

    def to_notice(self) -> Notice:
        return Notice(self.title, self.description, "destructive")


class ValidationError(UHIError):
    """Raised for malformed user input before any network call."""

    title = "Invalid values"


class CSVParseError(UHIError):
    """Raised when an uploaded CSV cannot be parsed at all."""

    title = "CSV Parse Error"


class RemoteError(UHIError):
    """Raised when the backend answers with a failure or an unreadable body."""

    def __init__(
        self,
        operation: str,
        status: Union[int, str],
        message: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.status = status
        self.message = message or f"{operation} failed ({status})"
        super().__init__(self.message)

    @property
    def is_timeout(self) -> bool:
        return self.status == "timeout"


__all__ = ["Notice", "UHIError", "ValidationError", "CSVParseError", "RemoteError"]
