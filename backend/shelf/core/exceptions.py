"""Domain errors.

Every error a caller can trigger is a ``ShelfError`` subclass carrying the
HTTP status it maps to, a stable machine-readable ``code`` and a short human
message. ``shelf.main`` renders them as ``{"detail": message, "code": code}``.
"""

from typing import Optional

from fastapi import status


class ShelfError(Exception):
    """Base class for domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"
    message: str = "Request could not be completed."
    headers: Optional[dict[str, str]] = None

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


# --- Authentication / authorization -----------------------------------------


class Unauthenticated(ShelfError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    message = "Not authenticated."


class InvalidCredentials(Unauthenticated):
    code = "invalid_credentials"
    message = "Invalid email or password."


class Forbidden(ShelfError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    message = "You do not have access to this action."


class EmailNotVerified(Forbidden):
    code = "email_not_verified"
    message = "Verify your email address to continue."


# --- Membership ---------------------------------------------------------------


class AlreadyAssigned(ShelfError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_assigned"
    message = "Account already linked to a household."


class InvalidDisplayName(ShelfError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_display_name"
    message = "Display name must be 1-32 characters."


class EmailInUse(ShelfError):
    status_code = status.HTTP_409_CONFLICT
    code = "email_in_use"
    message = "Email already belongs to a user."


class EmailReservedForMember(ShelfError):
    status_code = status.HTTP_409_CONFLICT
    code = "email_reserved_for_member"
    message = "Email reserved for a household member."


class MemberNotFound(ShelfError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "member_not_found"
    message = "Member not found."


# --- Invites ------------------------------------------------------------------


class InviteAlreadyActive(ShelfError):
    status_code = status.HTTP_409_CONFLICT
    code = "invite_already_active"
    message = "Email already reserved."


class InviteNotActive(ShelfError):
    status_code = status.HTTP_409_CONFLICT
    code = "invite_not_active"
    message = "Invite is no longer active."


class InviteNotAccepted(ShelfError):
    status_code = status.HTTP_409_CONFLICT
    code = "invite_not_accepted"
    message = "Invite not accepted yet."


class InviteNotFound(ShelfError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "invite_not_found"
    message = "Invite not found."


# --- Tokens -------------------------------------------------------------------


class InvalidToken(ShelfError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_token"
    message = "Invalid token."


class TokenUsed(ShelfError):
    status_code = status.HTTP_410_GONE
    code = "token_used"
    message = "Token already used."


class TokenExpired(ShelfError):
    status_code = status.HTTP_410_GONE
    code = "token_expired"
    message = "Token expired."


class EmailMismatch(ShelfError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "email_mismatch"
    message = "Email mismatch."


# --- Products -----------------------------------------------------------------


class ProductNotFound(ShelfError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "product_not_found"
    message = "Product not found."


class InvalidProduct(ShelfError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_product"
    message = "Invalid product."


# --- Infrastructure -----------------------------------------------------------


class DeliveryError(ShelfError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "delivery_error"
    message = "Email could not be sent. Please try again."


class MissingConfiguration(ShelfError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "missing_configuration"
    message = "Email delivery is not configured."


class RateLimited(ShelfError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "rate_limited"
    message = "Too many requests. Please try again later."

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Too many requests. Please try again in {retry_after} seconds.")

    @property
    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}
