"""Error taxonomy for promotion purchases.

Every error carries a ``user_message`` that can be shown as-is. None of them
is fatal: the workflow turns them into failed outcomes and stays usable.
"""

from __future__ import annotations

from dataclasses import dataclass

# Messages shown when the backend gives none
STATUS_MESSAGES: dict[int, str] = {
    400: "Invalid request. Please check your inputs.",
    401: "Please sign in to continue.",
    403: "You do not have permission to perform this action.",
    404: "The requested resource was not found.",
    409: "A conflict occurred. The resource may already exist.",
    422: "Validation failed. Please check your inputs.",
    429: "Too many requests. Please try again later.",
    500: "Server error. Please try again later.",
}

DEFAULT_MESSAGE = "An unexpected error occurred"

INSUFFICIENT_FUNDS_CODES = frozenset({"INSUFFICIENT_BALANCE", "INSUFFICIENT_FUNDS"})
CREDIT_EXHAUSTED_CODES = frozenset(
    {"NO_SUBSCRIPTION_CREDITS", "SUBSCRIPTION_CREDIT_EXHAUSTED", "CREDIT_EXHAUSTED"}
)


@dataclass(frozen=True, slots=True)
class FieldError:
    """A single field-level complaint from the API."""

    message: str
    field: str | None = None
    code: str | None = None


class PromoError(Exception):
    """Base class for all promotion errors."""

    default_message = DEFAULT_MESSAGE

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        code: str | None = None,
        errors: list[FieldError] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.status_code = status_code
        self.code = code
        self.errors = errors or []
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        return self.message

    @property
    def field_errors(self) -> dict[str, str]:
        """Field name -> message, for errors that name a field."""
        return {e.field: e.message for e in self.errors if e.field}


class ValidationError(PromoError):
    """Bad duration/type, missing listing or channel. Re-prompt the same step."""

    default_message = "Validation failed. Please check your inputs."


class InsufficientFunds(PromoError):
    """Wallet channel rejected by the backend."""

    default_message = "Your wallet balance is too low for this boost."


class CreditExhausted(PromoError):
    """Subscription credit no longer valid, e.g. raced by another purchase."""

    default_message = "No subscription credits are left for this boost."


class GatewayError(PromoError):
    """External provider order creation failed. Retryable."""

    default_message = "The payment provider could not start the payment. Try again."


class NetworkError(PromoError):
    """Transport-level failure. Retryable, nothing was mutated locally."""

    default_message = "Network error. Check your connection and try again."


class ApiError(PromoError):
    """Any other unsuccessful API response."""


class WorkflowStateError(PromoError):
    """A workflow transition was requested from a state that forbids it."""


def _text(value: object) -> str | None:
    return value if isinstance(value, str) and value else None


def _items(value: object) -> list[object]:
    return value if isinstance(value, list) else []


def error_from_response(
    status_code: int,
    payload: object,
) -> PromoError:
    """Map an unsuccessful API response onto the taxonomy.

    Args:
        status_code: HTTP status of the response.
        payload: Decoded JSON body (the ``{success, message, errors}`` envelope)
            or None when the body was not JSON.

    Returns:
        The matching PromoError subclass instance.
    """
    body = payload if isinstance(payload, dict) else {}
    code = _text(body.get("code"))
    errors = [
        FieldError(
            message=_text(item.get("message")) or "",
            field=_text(item.get("field")),
            code=_text(item.get("code")),
        )
        for item in _items(body.get("errors"))
        if isinstance(item, dict)
    ]
    codes = {c for c in [code, *(e.code for e in errors)] if c}

    message = _text(body.get("message"))
    if not message and errors:
        message = ". ".join(e.message for e in errors if e.message)
    if not message:
        message = STATUS_MESSAGES.get(status_code)

    kwargs = {"status_code": status_code, "code": code, "errors": errors}

    if status_code == 402 or codes & INSUFFICIENT_FUNDS_CODES:
        return InsufficientFunds(message, **kwargs)
    if codes & CREDIT_EXHAUSTED_CODES:
        return CreditExhausted(message, **kwargs)
    if status_code in (400, 422):
        return ValidationError(message, **kwargs)
    return ApiError(message, **kwargs)


def describe_error(error: BaseException, fallback: str = DEFAULT_MESSAGE) -> str:
    """Extract a message suitable for the user from any exception."""
    if isinstance(error, PromoError):
        return error.user_message
    return str(error) or fallback
