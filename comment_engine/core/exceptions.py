"""Comment engine error hierarchy.

Every error carries a stable machine ``code``. The HTTP layer maps codes to
status codes and the client maps the codes in error responses back to these
classes, so both sides raise the same exception types.
"""


class CommentError(Exception):
    """Base comment engine error."""

    code = "comment_error"
    default_message = "Comment operation failed"

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.default_message
        self.code = code or type(self).code
        super().__init__(self.message)


class InvalidTargetError(CommentError):
    """Unknown content type or malformed object id."""

    code = "invalid_target"
    default_message = "Invalid content target"


class EmptyTextError(CommentError):
    """Comment text is blank after trimming."""

    code = "empty_text"
    default_message = "Comment text cannot be empty"


class CommentTooLongError(CommentError):
    code = "comment_too_long"
    default_message = "Comment text is too long"


class InvalidParentError(CommentError):
    """Parent is unknown, deleted, or belongs to another target."""

    code = "invalid_parent"
    default_message = "Invalid parent comment"


class InvalidOrderingError(CommentError):
    code = "invalid_ordering"
    default_message = "Unsupported ordering"


class InvalidPageError(CommentError):
    code = "invalid_page"
    default_message = "Page must be >= 1 and page_size between 1 and 100"


class ReasonRequiredError(CommentError):
    code = "reason_required"
    default_message = "A reason is required for this action"


class CommentNotFoundError(CommentError):
    code = "comment_not_found"
    default_message = "Comment not found"


class PermissionDeniedError(CommentError):
    code = "permission_denied"
    default_message = "Permission denied"


class InvalidTransitionError(CommentError):
    """Moderation action not allowed from the comment's current state."""

    code = "invalid_transition"
    default_message = "Invalid moderation transition"


class RateLimitExceededError(CommentError):
    code = "rate_limit_exceeded"
    default_message = "Too many comments, slow down"


class SpamDetectedError(CommentError):
    code = "spam_detected"
    default_message = "Comment detected as spam"


class NotificationNotFoundError(CommentError):
    code = "notification_not_found"
    default_message = "Notification not found"


class SessionExpiredError(CommentError):
    """Raised by the client when a refreshed session is still rejected."""

    code = "session_expired"
    default_message = "Session expired"


class ServiceUnavailableError(CommentError):
    """Transport failure or 5xx response from the comment service."""

    code = "service_unavailable"
    default_message = "Comment service unavailable"


class ConcurrentUpdateError(CommentError):
    """A compare-and-set write kept losing to concurrent writers."""

    code = "concurrent_update"
    default_message = "Comment changed concurrently, try again"


_ERRORS_BY_CODE: dict[str, type[CommentError]] = {
    cls.code: cls
    for cls in (
        InvalidTargetError,
        EmptyTextError,
        CommentTooLongError,
        InvalidParentError,
        InvalidOrderingError,
        InvalidPageError,
        ReasonRequiredError,
        CommentNotFoundError,
        PermissionDeniedError,
        InvalidTransitionError,
        RateLimitExceededError,
        SpamDetectedError,
        NotificationNotFoundError,
        SessionExpiredError,
        ServiceUnavailableError,
        ConcurrentUpdateError,
    )
}


def error_from_code(code: str | None, message: str | None = None) -> CommentError:
    """Build the exception matching an error code from a service response."""
    error_cls = _ERRORS_BY_CODE.get(code or "", CommentError)
    if error_cls is CommentError:
        return CommentError(message, code)
    return error_cls(message)
