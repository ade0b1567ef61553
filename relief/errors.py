# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error taxonomy for core operations.

Each error carries the HTTP status and error type an outer request layer
should render.
"""

from typing import List, Optional


class ReliefError(Exception):
    """Base class for core application errors."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationError(ReliefError):
    """Malformed input; no state was changed."""

    def __init__(self, message: str, validation_errors: Optional[List[str]] = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []


class AuthorizationError(ReliefError):
    """Actor kind may not invoke the operation."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundError(ReliefError):
    """Entity absent or outside the actor's barangay."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class EligibilityError(ReliefError):
    """Family does not satisfy the schedule's claim rules."""

    def __init__(self, message: str):
        super().__init__(message, 422, "not-eligible")


class DuplicateClaimError(ReliefError):
    """Family already holds a non-rejected claim on the schedule."""

    def __init__(self, message: str = "Family has already claimed this donation"):
        super().__init__(message, 409, "already-claimed")


class TransitionError(ReliefError):
    """Transition not permitted from the current state."""

    def __init__(self, message: str, current_state: Optional[str] = None):
        super().__init__(message, 409, "invalid-transition")
        self.current_state = current_state


def from_pydantic(error, message: str = "Invalid input") -> ValidationError:
    """Convert a pydantic validation error into a ValidationError."""
    details = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        text = item.get("msg", "")
        if text.startswith("Value error, "):
            text = text[len("Value error, "):]
        details.append(f"{location}: {text}" if location else text)
    return ValidationError(details[0] if len(details) == 1 else message, details)
