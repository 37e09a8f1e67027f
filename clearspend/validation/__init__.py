"""Input validation package."""

from clearspend.validation.validator import InvalidMessageError, MessageValidator

__all__ = ["InvalidMessageError", "MessageValidator"]
