class SchoolError(Exception):
    """Base for errors that are safe to show to the API caller."""

    code = "error"
    status = 400
    message = "Request failed."

    def __init__(self, message=None, details=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details


class InvalidCredentials(SchoolError):
    code = "invalid_credentials"
    status = 401
    message = "Invalid username or password."


class DuplicateUsername(SchoolError):
    code = "duplicate_username"
    status = 409
    message = "Username already exists."


class PasswordMismatch(SchoolError):
    code = "password_mismatch"
    status = 400
    message = "Passwords do not match."


class Unauthenticated(SchoolError):
    code = "unauthenticated"
    status = 401
    message = "Not authenticated."


class Forbidden(SchoolError):
    code = "forbidden"
    status = 403
    message = "Not authorized."


class NotFound(SchoolError):
    code = "not_found"
    status = 404
    message = "Not found."


class AlreadyPaid(SchoolError):
    code = "already_paid"
    status = 400
    message = "Fee already paid."


class ValidationError(SchoolError):
    code = "validation_error"
    status = 400
    message = "Invalid data."
