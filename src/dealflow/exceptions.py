"""
Core exceptions for dealflow.

This module defines the root of the exception hierarchy used by the event
bus, the document tracker and the term sheet workflow.
"""

from typing import Any


class DealflowError(Exception):
    """Base exception for all dealflow errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary representation."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class WorkflowError(DealflowError):
    """Raised when an external collaborator fails during a workflow step."""
