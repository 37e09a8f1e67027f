"""
Chat Turn Validation

DESIGN DECISION: Validation happens BEFORE the pipeline.
A malformed turn is rejected with InvalidMessageError and never reaches
the resolver. Everything else is accepted: an ambiguous message is not
an error, it simply yields an unconstrained filter.

IMPORTANT: Validation NEVER silently fixes issues.
Warnings are reported (and logged) but the caller's input is used as sent.
"""

from typing import Optional

from clearspend.config import AssistantSettings, get_settings
from clearspend.models.receipt import (
    ConversationTurn,
    ValidationIssue,
    ValidationResult,
)


class InvalidMessageError(ValueError):
    """The chat turn cannot be processed at all."""

    def __init__(self, message: str, result: Optional[ValidationResult] = None):
        super().__init__(message)
        self.result = result


class MessageValidator:
    """Checks a ConversationTurn before it enters the resolver."""

    def __init__(self, settings: Optional[AssistantSettings] = None):
        self._settings = settings or get_settings().assistant

    def validate(self, turn: ConversationTurn) -> ValidationResult:
        """
        Collect every issue with the turn.

        Checks:
        - Message present and not just whitespace
        - Message within the configured length
        - Caller date filter not inverted
        """
        issues = []

        message = turn.message or ""
        if not message.strip():
            issues.append(ValidationIssue(
                field="message",
                issue_type="missing",
                message="Message is required",
                severity="error",
            ))
        elif len(message) > self._settings.max_message_length:
            issues.append(ValidationIssue(
                field="message",
                issue_type="too_long",
                message=(
                    f"Message is {len(message)} characters; "
                    f"the limit is {self._settings.max_message_length}"
                ),
                severity="error",
            ))

        filters = turn.explicit_filters
        if (
            filters is not None
            and filters.start_date is not None
            and filters.end_date is not None
            and filters.start_date > filters.end_date
        ):
            issues.append(ValidationIssue(
                field="filters",
                issue_type="inverted_range",
                message=(
                    f"Start date {filters.start_date} is after end date "
                    f"{filters.end_date}; nothing can match"
                ),
                severity="warning",
            ))

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def ensure_valid(self, turn: ConversationTurn) -> ValidationResult:
        """Validate and raise InvalidMessageError on the first error."""
        result = self.validate(turn)
        if result.has_errors:
            raise InvalidMessageError(result.first_error.message, result)
        return result
