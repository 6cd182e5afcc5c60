"""
errors.py

Domain error hierarchy.

Services raise these instead of HTTPException so they stay free of
FastAPI imports. caretoshare.main registers a single handler that turns
any AppError into a JSON response:

    {"detail": <message>, "code": <code>, ...extra}

Status mapping:
- InvalidInput       400
- PasswordRequired   400  (+ class_name, class_id, requires_password)
- IncorrectPassword  403
- Forbidden          403
- NotFound           404
- Conflict           409
- UpstreamFailure    502  (401 when requires_reauth)
"""

from typing import Any


class AppError(Exception):
    status_code: int = 400
    code: str = "APP_ERROR"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"detail": self.message, "code": self.code}
        body.update(self.extra)
        return body


class InvalidInput(AppError):
    status_code = 400
    code = "INVALID_INPUT"
    default_message = "Invalid input"


class NotAMember(InvalidInput):
    code = "NOT_A_MEMBER"
    default_message = "User must be a member first"


class CannotRemoveCreator(InvalidInput):
    code = "CANNOT_REMOVE_CREATOR"
    default_message = "Cannot remove the class creator"


class CreatorCannotLeave(InvalidInput):
    code = "CREATOR_CANNOT_LEAVE"
    default_message = "Creator cannot leave. Delete the class instead."


class PasswordRequired(AppError):
    status_code = 400
    code = "PASSWORD_REQUIRED"
    default_message = "Password required for private class"

    def __init__(self, message: str | None = None, *, class_name: str, class_id: str):
        super().__init__(message, requires_password=True, class_name=class_name, class_id=class_id)


class IncorrectPassword(AppError):
    status_code = 403
    code = "INCORRECT_PASSWORD"
    default_message = "Incorrect password"


class Forbidden(AppError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class CodeNotFound(NotFound):
    code = "CODE_NOT_FOUND"
    default_message = "Invalid class code"


class RequestNotFound(NotFound):
    code = "REQUEST_NOT_FOUND"
    default_message = "Join request not found"


class Conflict(AppError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Conflict"


class AlreadyMember(Conflict):
    code = "ALREADY_MEMBER"
    default_message = "You are already a member of this class"


class AlreadyCR(Conflict):
    code = "ALREADY_CR"
    default_message = "User is already a CR"


class UsernameTaken(Conflict):
    code = "USERNAME_TAKEN"
    default_message = "Username is already taken"


class ConcurrentModification(Conflict):
    code = "CONCURRENT_MODIFICATION"
    default_message = "Class was modified by another request, please retry"


class UpstreamFailure(AppError):
    status_code = 502
    code = "UPSTREAM_FAILURE"
    default_message = "Google service request failed"

    def __init__(self, message: str | None = None, *, requires_reauth: bool = False):
        super().__init__(message, requires_reauth=requires_reauth)
        if requires_reauth:
            self.status_code = 401
