"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    kind = "DOMAIN_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainException):
    """Input fields are missing, malformed, or out of range"""

    kind = "VALIDATION_ERROR"
    status_code = 400


class AuthorizationError(DomainException):
    """Actor lacks the role or branch scope for the action"""

    kind = "AUTHORIZATION_ERROR"
    status_code = 403


class AuthenticationError(DomainException):
    """Caller identity is missing or unknown"""

    kind = "AUTHENTICATION_ERROR"
    status_code = 401


class NotFoundError(DomainException):
    """Referenced branch, account, user or request does not exist"""

    kind = "NOT_FOUND"
    status_code = 404


class StateConflictError(DomainException):
    """Action is not allowed from the request's current workflow state"""

    kind = "STATE_CONFLICT"
    status_code = 400
