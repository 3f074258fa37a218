"""
Custom exceptions and error handling for TripShare.

Every refusal the engine produces is one of these, carrying an error code the
presentation layer can map to an inline message.

Usage:
    from tripshare.errors import ConflictError, ErrorCode

    raise ConflictError("guest already invited", code=ErrorCode.ALREADY_INVITED)
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for client-facing error messages."""

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_EMAIL = "MISSING_EMAIL"
    INVALID_BUDGET = "INVALID_BUDGET"
    INVALID_DATES = "INVALID_DATES"
    INVALID_CURRENCY = "INVALID_CURRENCY"
    PASSWORD_MISMATCH = "PASSWORD_MISMATCH"

    # Authorization errors
    EDIT_REQUIRED = "EDIT_REQUIRED"
    TRIP_COMPLETED = "TRIP_COMPLETED"
    OWNER_PROTECTED = "OWNER_PROTECTED"
    NOT_INVITE_GUEST = "NOT_INVITE_GUEST"
    NOT_INVITE_HOST = "NOT_INVITE_HOST"

    # Conflicts (expected business conditions)
    NO_ACCOUNT = "NO_ACCOUNT"
    ALREADY_PARTICIPANT = "ALREADY_PARTICIPANT"
    ALREADY_INVITED = "ALREADY_INVITED"
    INVALID_INVITE_STATE = "INVALID_INVITE_STATE"
    ACTIVITY_CONFIRMED = "ACTIVITY_CONFIRMED"
    STALE_TRIP = "STALE_TRIP"
    EMAIL_TAKEN = "EMAIL_TAKEN"

    # Missing records
    TRIP_NOT_FOUND = "TRIP_NOT_FOUND"
    INVITE_NOT_FOUND = "INVITE_NOT_FOUND"
    ACTIVITY_NOT_FOUND = "ACTIVITY_NOT_FOUND"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"

    # Authentication
    AUTH_FAILED = "AUTH_FAILED"

    # Collaborator failures
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    TIMEOUT = "TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


USER_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "Some of the information is invalid. Please check and try again.",
    ErrorCode.MISSING_EMAIL: "Please enter an email address.",
    ErrorCode.INVALID_BUDGET: "The budget must be a number greater than or equal to zero.",
    ErrorCode.INVALID_DATES: "Please fill in the destination and valid start and end dates.",
    ErrorCode.INVALID_CURRENCY: "Currency must be BRL, USD or EUR.",
    ErrorCode.PASSWORD_MISMATCH: "The passwords do not match.",
    ErrorCode.EDIT_REQUIRED: "You only have permission to view this trip.",
    ErrorCode.TRIP_COMPLETED: "This trip has been concluded and can no longer be edited.",
    ErrorCode.OWNER_PROTECTED: "The trip owner cannot be removed or lose edit access.",
    ErrorCode.NOT_INVITE_GUEST: "Only the invited person can answer this invite.",
    ErrorCode.NOT_INVITE_HOST: "Only the person who sent this invite can manage it.",
    ErrorCode.NO_ACCOUNT: "No account found with this email.",
    ErrorCode.ALREADY_PARTICIPANT: "This user already participates in the trip.",
    ErrorCode.ALREADY_INVITED: "An invite for this trip has already been sent to this user.",
    ErrorCode.INVALID_INVITE_STATE: "This invite can no longer be changed that way.",
    ErrorCode.ACTIVITY_CONFIRMED: "This activity is already confirmed; its cost and travelers are locked.",
    ErrorCode.STALE_TRIP: "Someone else changed this trip in the meantime. Reload it and try again.",
    ErrorCode.EMAIL_TAKEN: "This email is already registered.",
    ErrorCode.TRIP_NOT_FOUND: "Trip not found.",
    ErrorCode.INVITE_NOT_FOUND: "Invite not found.",
    ErrorCode.ACTIVITY_NOT_FOUND: "Activity not found.",
    ErrorCode.PARTICIPANT_NOT_FOUND: "This person is not part of the trip.",
    ErrorCode.AUTH_FAILED: "Incorrect email or password.",
    ErrorCode.PERSISTENCE_FAILED: "We could not save your changes. Please try again.",
    ErrorCode.TIMEOUT: "The request timed out. Please try again.",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred. Please try again.",
}


class TripShareError(Exception):
    """Base exception for all TripShare errors."""

    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, code: ErrorCode | None = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return USER_MESSAGES.get(self.code, USER_MESSAGES[ErrorCode.INTERNAL_ERROR])


class ValidationError(TripShareError):
    """Input rejected before any mutation was attempted."""

    default_code = ErrorCode.VALIDATION_ERROR


class AuthorizationError(TripShareError):
    """Actor lacks the permission the operation needs."""

    default_code = ErrorCode.EDIT_REQUIRED


class ConflictError(TripShareError):
    """Expected business conflict (duplicate invite, stale snapshot, ...)."""

    pass


class NotFoundError(TripShareError):
    """Referenced record does not exist."""

    default_code = ErrorCode.TRIP_NOT_FOUND


class PersistenceError(TripShareError):
    """Store unreachable, failed, or timed out."""

    default_code = ErrorCode.PERSISTENCE_FAILED


class AuthenticationError(TripShareError):
    """Identity provider refused the credentials or session."""

    default_code = ErrorCode.AUTH_FAILED
