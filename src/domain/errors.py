"""Error taxonomy and the mapping from technical failures to user guidance."""
from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base class for every error the media pipeline and grid report."""

    code = "unknown"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code:
            self.code = code


class ValidationError(StorefrontError):
    code = "validation"


class ConversionError(StorefrontError):
    code = "conversion"


class PersistenceError(StorefrontError):
    code = "persistence"


class UnknownError(StorefrontError):
    code = "unknown"


class EditorStateError(ValidationError):
    pass


class NotFoundError(ValidationError):
    code = "not-found"


@dataclass(frozen=True)
class ErrorReport:
    message: str
    recovery: str
    technical: str
    context: str = ""

    @property
    def user_message(self) -> str:
        return f"{self.message}. {self.recovery}"


# code -> (message, recovery)
ERROR_MESSAGES: dict[str, tuple[str, str]] = {
    "permission-denied": (
        "Permission denied",
        "Please log out and log back in, then try again.",
    ),
    "unauthenticated": ("Session expired", "Please refresh the page and log in again."),
    "unavailable": ("Service temporarily unavailable", "Please try again in a few minutes."),
    "deadline-exceeded": ("Request took too long", "Check your connection and try again."),
    "resource-exhausted": ("Too many requests", "Please wait a moment before trying again."),
    "network": ("Network connection lost", "Check your internet connection and try again."),
    "timeout": (
        "Request timed out",
        "Your connection is slow. Try again or use a better network.",
    ),
    "not-found": ("Not found", "Refresh the page and try again."),
    "capacity": ("Too many images", "Remove an image before adding another."),
    "validation": ("Invalid data", "Please check your entries and correct any errors."),
    "heic-conversion": (
        "HEIC conversion failed",
        "Please try uploading a JPEG or PNG image instead.",
    ),
    "conversion": ("Image could not be processed", "Please try a different JPEG or PNG image."),
    "file-too-large": ("File too large", "Please use an image smaller than 10MB."),
    "unsupported-format": (
        "Unsupported file format",
        "Please use JPEG, PNG, WebP, or HEIC images.",
    ),
    "unknown": (
        "Something went wrong",
        "Please try again. If the problem persists, refresh the page.",
    ),
}

# Domain errors carry messages written for the seller, so they are shown as-is.
_SELF_DESCRIBING = (ValidationError, ConversionError)


class ErrorHandler:
    """Maps exceptions to short user messages plus a recovery instruction."""

    messages = ERROR_MESSAGES

    @classmethod
    def handle(cls, error: BaseException | str, context: str = "") -> ErrorReport:
        technical = str(error) or type(error).__name__
        logger.warning("[%s] %s", context or "error", technical)

        code = getattr(error, "code", None)
        if code in cls.messages and code != "unknown":
            message, recovery = cls.messages[code]
            if isinstance(error, _SELF_DESCRIBING):
                message = technical
            return ErrorReport(message, recovery, technical, context)

        lowered = technical.lower()
        for key, (message, recovery) in cls.messages.items():
            if key != "unknown" and key in lowered:
                return ErrorReport(message, recovery, technical, context)

        message, recovery = cls.messages["unknown"]
        return ErrorReport(message, recovery, technical, context)
