"""
Error taxonomy for the Gambo Stadium API.

Every error raised by the ledgers derives from AppError and carries the HTTP
status it is rendered with. main.py installs a single handler for AppError.
"""


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


# 400 ------------------------------------------------------------------------
class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class MissingFields(ValidationError):
    default_message = "Missing required fields"

    def __init__(self, fields=None):
        self.fields = list(fields or [])
        message = self.default_message
        if self.fields:
            message = f"{message}: {', '.join(self.fields)}"
        super().__init__(message)


class InvalidCredentials(ValidationError):
    default_message = "Invalid email or password"


# 401 / 403 ------------------------------------------------------------------
class AuthenticationError(AppError):
    status_code = 401
    default_message = "Could not validate credentials"


class Unauthenticated(AuthenticationError):
    default_message = "No token provided"


class InvalidToken(AuthenticationError):
    status_code = 403
    default_message = "Invalid token"


class Forbidden(AuthenticationError):
    status_code = 403
    default_message = "Admin access required"


# 404 ------------------------------------------------------------------------
class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class UnknownUser(NotFoundError):
    default_message = "User not found"


class UnknownBooking(NotFoundError):
    default_message = "Booking not found"


class UnknownTeam(NotFoundError):
    default_message = "Premium team not found"


class UnknownCoach(NotFoundError):
    default_message = "Coach not found"


# 409 ------------------------------------------------------------------------
class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class DuplicateEmail(ConflictError):
    default_message = "Email already in use"


class SlotConflict(ConflictError):
    default_message = "Time slot not available"


# 500 ------------------------------------------------------------------------
class InternalError(AppError):
    pass
