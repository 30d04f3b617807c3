from __future__ import annotations

from fastapi import HTTPException, status


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ValidationError(HTTPException):
    def __init__(self, detail: str = "Invalid request") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str = "Conflict") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InternalError(HTTPException):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


# Constraint names declared on the models, mapped to client-facing messages.
_CONFLICT_MESSAGES = {
    "uq_users_email": "User with this email already exists",
    "users.email": "User with this email already exists",
    "uq_booking_slot": "A booking for this slot already exists.",
    "uq_review_lesson": "You have already reviewed this lesson",
    "uq_languages_name": "Language already exists",
    "uq_languages_code": "Language already exists",
    "languages.name": "Language already exists",
    "languages.code": "Language already exists",
}


def conflict_message_for(error_text: str) -> str | None:
    """Return a friendly message when an integrity error is a unique-key violation."""
    text = str(error_text or "")
    lowered = text.lower()
    if "duplicate key value violates unique constraint" not in lowered and "unique constraint failed" not in lowered:
        return None
    for marker, message in _CONFLICT_MESSAGES.items():
        if marker in text:
            return message
    return "Resource already exists"
