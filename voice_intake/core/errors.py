"""Exception types and handling utilities."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("voice_intake.errors")


class IntakeError(Exception):
    """Base class for errors surfaced to the user during order intake."""

    user_message = "Something went wrong with the order assistant."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)
        self.message = message or self.user_message


class SubmitError(IntakeError):
    """Order submission did not produce an order."""

    spoken_message = "Sorry, there was an error submitting the order to the dashboard."
    outcome = "failed"


class MissingProductName(SubmitError):
    user_message = "Missing product name"
    spoken_message = "I still need the product name before I can submit the order."
    outcome = "missing_product_name"


class SubmissionRejected(SubmitError):
    """The order endpoint answered with a non-success status."""

    outcome = "rejected"

    def __init__(self, detail: str | None = None, status_code: int | None = None) -> None:
        self.detail = detail or "Unknown error"
        self.status_code = status_code
        super().__init__(f"Submission failed: {self.detail}")


class NetworkUnavailable(SubmitError):
    user_message = "Network error connecting to backend."
    spoken_message = "Sorry, I couldn't connect to the server."
    outcome = "network_unavailable"


class SpeechError(IntakeError):
    user_message = "Listening failed"


class SpeechUnsupported(SpeechError):
    user_message = "Browser not supported"


class SpeechFailure(SpeechError):
    pass


class InvalidTransition(IntakeError):
    """The requested action is not allowed in the current dialogue state."""


class ConversationNotFound(LookupError):
    """Raised when a conversation id is unknown to the store."""


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    """Return a generic JSON error response while logging the exception."""

    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "Something unexpected happened. Please try again later.",
        },
    )


async def conversation_not_found_handler(request: Request, exc: ConversationNotFound) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"error": "conversation_not_found", "message": f"Unknown conversation {exc}"},
    )


async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"error": "invalid_transition", "message": exc.message},
    )
